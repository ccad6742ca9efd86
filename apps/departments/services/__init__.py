from .merger import flatten_sections, merge_departments

__all__ = ["flatten_sections", "merge_departments"]
