from __future__ import annotations

import pytest

from src.app.domain import recipe_ids
from src.app.domain.dedupe import dedupe
from src.app.domain.filters import apply_filters, matches, parse_duration_minutes, parse_minutes
from src.app.domain.models import Provenance, RecipeKey, SearchFilters, normalize_title

from tests.unit.conftest import make_recipe


class TestRecipeIds:
    def test_plain_id_is_local(self) -> None:
        assert recipe_ids.decode("42") == RecipeKey(Provenance.LOCAL, "42")

    def test_catalog_prefix(self) -> None:
        assert recipe_ids.decode("catalog:716429") == RecipeKey(Provenance.CATALOG, "716429")

    def test_generated_prefix_keeps_variant_suffix(self) -> None:
        decoded = recipe_ids.decode("generated:52772-2")
        assert decoded.provenance is Provenance.GENERATED
        assert decoded.key == "52772-2"
        assert recipe_ids.seed_id(decoded.key) == "52772"

    @pytest.mark.parametrize("raw", ["catalog:", "generated: x", "Catalog:1", "ai-52772", "uuid:catalog:1"])
    def test_malformed_prefixes_fall_back_to_local(self, raw: str) -> None:
        assert recipe_ids.decode(raw) == RecipeKey(Provenance.LOCAL, raw)

    @pytest.mark.parametrize("raw", ["catalog:12\n", "generated:52772\n", "catalog:1\n2"])
    def test_embedded_newline_is_local_and_round_trips(self, raw: str) -> None:
        decoded = recipe_ids.decode(raw)
        assert decoded == RecipeKey(Provenance.LOCAL, raw)
        assert recipe_ids.encode(decoded.provenance, decoded.key) == raw

    def test_non_string_input_never_raises(self) -> None:
        assert recipe_ids.decode(None) == RecipeKey(Provenance.LOCAL, "")
        assert recipe_ids.decode(123) == RecipeKey(Provenance.LOCAL, "123")

    def test_encode_is_inverse_of_decode(self) -> None:
        for raw in ("catalog:9", "generated:52772", "3f2a-local"):
            decoded = recipe_ids.decode(raw)
            assert recipe_ids.encode(decoded.provenance, decoded.key) == raw

    def test_helpers(self) -> None:
        assert recipe_ids.catalog_id(716429) == "catalog:716429"
        assert recipe_ids.generated_id("52772") == "generated:52772"
        assert recipe_ids.seed_id("52772") == "52772"


class TestDedupe:
    def test_first_occurrence_wins_case_insensitive(self) -> None:
        soup = make_recipe("Soup", recipe_id="1")
        result = dedupe([soup, make_recipe("soup ", recipe_id="2"), make_recipe("Stew", recipe_id="3")])
        assert [r.id for r in result] == ["1", "3"]
        assert result[0] is soup

    def test_empty_titles_are_dropped(self) -> None:
        result = dedupe([make_recipe("  ", recipe_id="1"), make_recipe("Stew", recipe_id="2")])
        assert [r.id for r in result] == ["2"]

    def test_no_two_results_share_a_title(self) -> None:
        titles = ["A", "a", " A ", "b", "B", "c"]
        result = dedupe(make_recipe(t, recipe_id=str(i)) for i, t in enumerate(titles))
        keys = [normalize_title(r.title) for r in result]
        assert keys == ["a", "b", "c"]


class TestMinutes:
    @pytest.mark.parametrize(
        "label, expected",
        [("30 mins", 30), ("45 min", 45), ("about 20mins", 20), ("1 hour", None), (None, None), ("", None)],
    )
    def test_parse_minutes(self, label, expected) -> None:
        assert parse_minutes(label) == expected

    @pytest.mark.parametrize(
        "label, expected",
        [("45 mins", 45), ("1 hour", 60), ("1.5 hours", 90), ("1 hour 30 mins", 90), ("soon", None)],
    )
    def test_parse_duration_minutes(self, label, expected) -> None:
        assert parse_duration_minutes(label) == expected


class TestFilters:
    def test_unknown_time_fails_closed_when_bounded(self) -> None:
        recipes = [
            make_recipe("Quick", cook_time="20 mins"),
            make_recipe("Slow", cook_time="40 mins"),
            make_recipe("Mystery", cook_time=None),
        ]
        result = apply_filters(recipes, SearchFilters(max_ready_minutes=30))
        assert [r.title for r in result] == ["Quick"]

    def test_structured_minutes_take_precedence(self) -> None:
        recipe = make_recipe("Braise", cook_time="2 hours", cook_time_minutes=120)
        assert not matches(recipe, SearchFilters(max_ready_minutes=30))
        assert matches(recipe, SearchFilters(max_ready_minutes=120))

    def test_zero_time_means_no_bound(self) -> None:
        recipe = make_recipe("Mystery")
        assert matches(recipe, SearchFilters(max_ready_minutes=0))
        assert SearchFilters(max_ready_minutes=0).is_empty

    def test_cuisine_and_diet_are_case_insensitive(self) -> None:
        recipe = make_recipe("Curry", cuisine_type="Indian", diet_type="vegetarian")
        assert matches(recipe, SearchFilters(cuisine="indian", diet="Vegetarian"))
        assert not matches(recipe, SearchFilters(cuisine="thai"))
        assert not matches(make_recipe("Plain"), SearchFilters(diet="vegan"))

    def test_no_filters_keeps_everything(self) -> None:
        recipes = [make_recipe("A"), make_recipe("B")]
        assert apply_filters(recipes, None) == recipes
        assert apply_filters(recipes, SearchFilters()) == recipes


class TestRecipe:
    def test_normalized_title(self) -> None:
        assert make_recipe("  Pad Thai ").normalized_title == "pad thai"

    def test_recipe_is_frozen(self) -> None:
        recipe = make_recipe("Toast")
        with pytest.raises(AttributeError):
            recipe.title = "Bread"  # type: ignore[misc]
