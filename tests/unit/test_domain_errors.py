from __future__ import annotations

from src.app.domain.errors import (
    DuplicateTitleError,
    GenerationInvalidError,
    QuotaExceededError,
    RecipeNotFoundError,
    ResolutionError,
    SourceUnavailableError,
    StoreUnavailableError,
)


class TestResolutionError:
    def test_base_exception(self) -> None:
        error = ResolutionError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)


class TestRecipeNotFoundError:
    def test_includes_recipe_id(self) -> None:
        error = RecipeNotFoundError("catalog:42")
        assert "catalog:42" in str(error)
        assert error.recipe_id == "catalog:42"


class TestSourceUnavailableError:
    def test_retryable_default_true(self) -> None:
        error = SourceUnavailableError("catalog", "timeout")
        assert error.retryable is True
        assert error.status_code is None
        assert "catalog" in str(error)
        assert "timeout" in str(error)

    def test_not_retryable(self) -> None:
        error = SourceUnavailableError("catalog", "HTTP 400", status_code=400, retryable=False)
        assert error.retryable is False
        assert error.status_code == 400


class TestStoreUnavailableError:
    def test_is_a_source_failure(self) -> None:
        error = StoreUnavailableError("insert", "connection reset")
        assert isinstance(error, SourceUnavailableError)
        assert error.source == "store"
        assert error.operation == "insert"
        assert "connection reset" in str(error)


class TestQuotaExceededError:
    def test_default_message(self) -> None:
        error = QuotaExceededError()
        assert str(error) == "Catalog quota exceeded"
        assert error.source == "catalog"
        assert error.retryable is False


class TestGenerationInvalidError:
    def test_keeps_raw_output(self) -> None:
        error = GenerationInvalidError("bad diet", raw_output='{"diet_type": "carnivore"}')
        assert error.raw_output == '{"diet_type": "carnivore"}'
        assert error.retryable is False


class TestDuplicateTitleError:
    def test_includes_title_and_existing_id(self) -> None:
        error = DuplicateTitleError("Pad Thai", existing_id="generated:1")
        assert "Pad Thai" in str(error)
        assert error.title == "Pad Thai"
        assert error.existing_id == "generated:1"
