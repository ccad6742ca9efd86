"""
apps.verticals
~~~~~~~~~~~~~~
Deploy-time, per-vertical defaults: departments, dashboard labels, stat
cards and branding colours.  Pure Python, no ORM models.
"""
