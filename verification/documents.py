from typing import Dict, List, Optional

from config import DOCUMENT_GROUPS
from .models import DocumentGroup, NormalizedImage, Side, VerificationKind


class DocumentSet:
    """
    Slot fill state for one verification attempt.

    Every operation names its group and side explicitly; there is no notion
    of a "currently selected" slot.
    """

    def __init__(self, kind: VerificationKind, groups: List[DocumentGroup]):
        self.kind = VerificationKind(kind)
        self._groups: Dict[str, DocumentGroup] = {g.name: g for g in groups}

    @classmethod
    def for_kind(cls, kind: VerificationKind) -> "DocumentSet":
        kind = VerificationKind(kind)
        groups = [
            DocumentGroup(name=cfg["name"], required=cfg["required"])
            for cfg in DOCUMENT_GROUPS[kind.value]
        ]
        return cls(kind, groups)

    @property
    def groups(self) -> List[DocumentGroup]:
        return list(self._groups.values())

    def group(self, name: str) -> DocumentGroup:
        try:
            return self._groups[name]
        except KeyError:
            raise KeyError(f"Unknown document group for {self.kind.value}: {name}") from None

    def put(self, name: str, side: Side, image: NormalizedImage) -> None:
        self.group(name).slot(side).asset = image

    def get(self, name: str, side: Side) -> Optional[NormalizedImage]:
        return self.group(name).slot(side).asset

    def clear(self, name: str, side: Side) -> None:
        self.group(name).slot(side).asset = None

    def is_complete(self, name: str) -> bool:
        return self.group(name).is_complete

    def missing_required(self) -> List[str]:
        return [g.name for g in self._groups.values() if g.required and not g.is_complete]

    def assemble_payload(self) -> Dict[str, List[NormalizedImage]]:
        """
        Returns {group name: [front, back]} for every complete group.
        An optional group with a single image is left out entirely.
        """
        return {
            g.name: [g.front.asset, g.back.asset]
            for g in self._groups.values()
            if g.is_complete
        }
