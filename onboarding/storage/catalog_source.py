from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml
from jsonschema import validate

from onboarding.catalog.models import CatalogItem, Solution
from onboarding.core.logging_config import logger

DATA_DIR = Path(__file__).resolve().parent / "data"
CATALOG_FILE = DATA_DIR / "catalog.yaml"
CATALOG_SCHEMA_FILE = DATA_DIR / "catalog.schema.json"


class InMemoryCatalogSource:
    def __init__(self, items: Iterable[CatalogItem], solutions: Iterable[Solution] = ()):
        self.items: Tuple[CatalogItem, ...] = tuple(items)
        self.solutions: Tuple[Solution, ...] = tuple(solutions)

    def list_catalog_items(
        self,
        solution_ids: Optional[Iterable[str]] = None,
        category_ids: Optional[Iterable[str]] = None,
    ) -> List[CatalogItem]:
        """
        None means "no filter" for either dimension. An item passes the
        solution filter if it is listed for at least one of the ids.
        """
        sol = None if solution_ids is None else set(solution_ids)
        cat = None if category_ids is None else set(category_ids)

        out: List[CatalogItem] = []
        for item in self.items:
            if sol is not None and not any(item.listed_for(s) for s in sol):
                continue
            if cat is not None and item.category not in cat:
                continue
            out.append(item)
        return out

    def item(self, item_id: str) -> Optional[CatalogItem]:
        return next((i for i in self.items if i.id == item_id), None)


@dataclass(frozen=True)
class LoadedCatalog:
    items: Tuple[CatalogItem, ...]
    solutions: Tuple[Solution, ...]

    def source(self) -> InMemoryCatalogSource:
        return InMemoryCatalogSource(self.items, self.solutions)


def _solution_from_dict(d: Dict[str, Any]) -> Solution:
    defaults = Solution(id="", name="")
    return Solution(
        id=str(d["id"]),
        name=str(d["name"]),
        requires_modules=bool(d.get("requiresModules", False)),
        module_category=str(d.get("moduleCategory") or defaults.module_category),
        system_category=str(d.get("systemCategory") or defaults.system_category),
    )


def load_catalog_yaml(path: Optional[str] = None) -> LoadedCatalog:
    catalog_path = Path(path) if path else CATALOG_FILE

    with catalog_path.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f)

    with CATALOG_SCHEMA_FILE.open("r", encoding="utf-8") as f:
        schema = json.load(f)

    validate(instance=d, schema=schema)

    items = tuple(CatalogItem.from_dict(i) for i in d.get("items") or [])
    solutions = tuple(_solution_from_dict(s) for s in d.get("solutions") or [])
    logger.bind(path=str(catalog_path), items=len(items), solutions=len(solutions)).info("catalog_loaded")
    return LoadedCatalog(items=items, solutions=solutions)
