"""
apps.departments.exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~~~
Assignment store failures, classified so the layout editor can tell a
missing or forbidden table (fallback mode) from a transient failure (retry).
"""
from common.exceptions import ServiceUnavailableError


class AssignmentStoreError(ServiceUnavailableError):
    """Transient or unclassified failure talking to the assignment table."""

    default_code = "assignment_store_error"
    default_detail = "Department assignments could not be loaded. Please retry."

    #: Whether the layout editor should switch to fallback mode.
    enters_fallback: bool = False


class AssignmentTableMissingError(AssignmentStoreError):
    default_code = "table_missing"
    default_detail = "The department assignment table does not exist."
    enters_fallback = True


class AssignmentPermissionError(AssignmentStoreError):
    default_code = "permission_denied"
    default_detail = "Access to the department assignment table was denied."
    enters_fallback = True
