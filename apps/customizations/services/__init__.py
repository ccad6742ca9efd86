from .customization_service import (
    copy_from_vertical,
    export_customization,
    get_active_customization,
    get_effective_settings,
    import_customization,
    save_customization,
)
from .field_merge import apply_customization

__all__ = [
    "apply_customization",
    "copy_from_vertical",
    "export_customization",
    "get_active_customization",
    "get_effective_settings",
    "import_customization",
    "save_customization",
]
