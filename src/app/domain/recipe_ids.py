# src/app/domain/recipe_ids.py
import re

from src.app.domain.models import Provenance, RecipeKey

CATALOG_PREFIX = "catalog:"
GENERATED_PREFIX = "generated:"

_NAMESPACED_RE = re.compile(r"(catalog|generated):(\S.*)")

_PREFIXES = {
    Provenance.CATALOG: CATALOG_PREFIX,
    Provenance.GENERATED: GENERATED_PREFIX,
}


def decode(recipe_id: object) -> RecipeKey:
    """Returns (provenance, key) for an id. Unrecognized forms are local."""
    if not isinstance(recipe_id, str):
        return RecipeKey(Provenance.LOCAL, "" if recipe_id is None else str(recipe_id))
    m = _NAMESPACED_RE.fullmatch(recipe_id)
    if not m:
        return RecipeKey(Provenance.LOCAL, recipe_id)
    return RecipeKey(Provenance(m.group(1)), m.group(2))


def encode(provenance: Provenance, key: str) -> str:
    prefix = _PREFIXES.get(Provenance(provenance))
    return f"{prefix}{key}" if prefix else key


def seed_id(key: str) -> str:
    """Seed part of a generated key: '52772-2' -> '52772'."""
    return key.split("-", 1)[0]


def catalog_id(external_id: object) -> str:
    return encode(Provenance.CATALOG, str(external_id))


def generated_id(key: object) -> str:
    return encode(Provenance.GENERATED, str(key))
