from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.models import CatalogItem
from onboarding.documents.template_model import Template


@dataclass(frozen=True)
class Ack:
    context_id: str
    snapshot_id: str
    cards: int


class TemplateStore(Protocol):
    def save(self, template: Template) -> str: ...  # PersistError
    def load(self, template_id: str) -> Template: ...  # NotFoundError


class QuoteSnapshotStore(Protocol):
    def save_quote_snapshot(self, cards: Sequence[LineItemCard], context_id: str) -> Ack: ...


class CatalogSource(Protocol):
    def list_catalog_items(
        self,
        solution_ids: Optional[Iterable[str]] = None,
        category_ids: Optional[Iterable[str]] = None,
    ) -> List[CatalogItem]: ...


class DocumentRenderer(Protocol):
    def render(self, template: Template, merge_data: Mapping[str, Any]) -> bytes: ...
