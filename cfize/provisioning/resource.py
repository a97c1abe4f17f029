"""Minimal resource binding used by the bootstrap builder."""

from typing import Any, Dict, Optional


class Resource:
    """
    A named template resource with a generic attribute store.

    Only the logical name and attribute access are needed by the builder;
    the full template object model lives with the host.
    """

    def __init__(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        self.name = name
        self.attributes: Dict[str, Any] = dict(attributes or {})

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Template fragment for this resource (attributes keyed by name)."""
        return dict(self.attributes)

    def __repr__(self) -> str:
        return f"Resource({self.name!r})"
