"""
Change events delivered by the live feed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

DISAPPEAR = "disappear"


@dataclass
class ListenerEvent:
    """A change event from the live feed.

    Attributes:
        document_id: Raw id of the touched document
        transition: "disappear" for deletions, anything else for
            created-or-updated ("appear", "update")
        result: Document body after the change (absent on disappear)

    Example:
        {
            "documentId": "drafts.post-1",
            "transition": "update",
            "result": {"_id": "drafts.post-1", "_type": "post", "title": "Hi"}
        }
    """

    document_id: str
    transition: str
    result: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ListenerEvent:
        """Create from the feed's wire representation.

        Raises:
            ValueError: If required fields are missing
        """
        required = ["documentId", "transition"]
        missing = [f for f in required if not data.get(f)]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")

        return cls(
            document_id=data["documentId"],
            transition=data["transition"],
            result=data.get("result"),
        )

    @property
    def is_disappear(self) -> bool:
        return self.transition == DISAPPEAR

