"""
apps.departments.signals
~~~~~~~~~~~~~~~~~~~~~~~~
Publishes assignment writes made outside ``AssignmentStore`` to the realtime
change feed.  Store writes run inside ``batched_changes()`` and publish one
change of their own.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import DepartmentSectionAssignment
from .realtime import AssignmentChange, current_origin, in_batch, publish_on_commit


def _publish(instance: DepartmentSectionAssignment, event_type: str) -> None:
    if in_batch():
        return
    publish_on_commit(
        AssignmentChange(
            event_type=event_type,
            organization_id=instance.organization_id,
            vertical_id=str(instance.vertical_id),
            department_ids=(instance.department_id,),
            origin=current_origin(),
        )
    )


@receiver(post_save, sender=DepartmentSectionAssignment)
def assignment_saved(sender, instance, created, **kwargs):
    _publish(instance, "INSERT" if created else "UPDATE")


@receiver(post_delete, sender=DepartmentSectionAssignment)
def assignment_deleted(sender, instance, **kwargs):
    _publish(instance, "DELETE")
