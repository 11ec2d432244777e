# statlookup/catalog.py
"""
Read-only product catalog backed by a static data.json file.

The file is an array of {productId, description, vectors: [{vectorId, text}]} and is
validated against schemas/lookup_schema.json on every load. Lookups are local; no
network call is made.

Env vars:
- LOOKUP_DATA_PATH (default: frontend/data.json)
"""

import os
import json
import pathlib
from typing import Any, List, Optional

from jsonschema import validate as jsonschema_validate, ValidationError

from statlookup.processors.normalizer import normalize_product_id
from statlookup.schemas import ProductLookupEntry

ROOT = pathlib.Path(__file__).resolve().parents[1]
SCHEMA_PATH = ROOT.joinpath("schemas", "lookup_schema.json")
DEFAULT_DATA_PATH = ROOT.joinpath("frontend", "data.json")


class CatalogError(RuntimeError):
    """The catalog file is missing, unreadable, or does not match the schema."""


def data_path() -> pathlib.Path:
    return pathlib.Path(os.getenv("LOOKUP_DATA_PATH") or DEFAULT_DATA_PATH)


def _load_schema() -> dict:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def load_catalog(path: Optional[os.PathLike] = None) -> List[ProductLookupEntry]:
    path = pathlib.Path(path) if path else data_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw: Any = json.load(f)
    except OSError as e:
        raise CatalogError(f"Failed to load {path.name}: {e}") from e
    except ValueError as e:
        raise CatalogError(f"{path.name} is not valid JSON: {e}") from e

    try:
        jsonschema_validate(instance=raw, schema=_load_schema())
    except ValidationError as e:
        raise CatalogError(f"{path.name} does not match the catalog schema: {e.message}") from e

    return [ProductLookupEntry.model_validate(item) for item in raw]


def lookup_by_product_id(product_id: Any, path: Optional[os.PathLike] = None) -> Optional[ProductLookupEntry]:
    """Exact productId match. Form input like " 18100004 " or "18-10-0004" is normalized first."""
    wanted = normalize_product_id(product_id)
    if wanted is None:
        return None
    for entry in load_catalog(path):
        if entry.productId == wanted:
            return entry
    return None
