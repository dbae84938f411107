"""
FlowCast - Settings Repository Tests.

Async tests for the in-memory and JSON settings stores.
Tests ensure load-or-default behaviour, validation on save and
faithful persistence across repository instances.
"""

import json
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from flowcast.repository import InMemorySettingsRepository, JsonSettingsRepository
from flowcast.schema import Debt, ProjectionSettings, default_settings
from flowcast.validator import SettingsValidationError


def sample_settings(**overrides) -> ProjectionSettings:
    """Returns a valid settings record with one debt."""
    values = dict(
        current_balance=Decimal("-250.00"),
        monthly_income=Decimal("4200.00"),
        monthly_fixed_expenses=Decimal("1800.00"),
        monthly_variable_expenses=Decimal("650.00"),
        debts=(Debt(Decimal("9000.00"), Decimal("300.00"), Decimal("0.069"), "Car"),),
        investment_contribution_monthly=Decimal("150.00"),
        investment_return_annual=Decimal("0.05"),
        horizon_months=24,
    )
    values.update(overrides)
    return ProjectionSettings(**values)


class TestInMemorySettingsRepository:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_load_returns_defaults(self) -> None:
        """Verify an empty store returns the default settings."""
        repo = InMemorySettingsRepository()

        assert await repo.load() == default_settings()

    @pytest.mark.asyncio
    async def test_save_then_load(self) -> None:
        """Verify the saved record replaces the defaults."""
        repo = InMemorySettingsRepository()
        settings = sample_settings()

        stored = await repo.save(settings)

        assert stored == settings
        assert await repo.load() == settings

    @pytest.mark.asyncio
    async def test_initial_record(self) -> None:
        """Verify an initial record is returned before any save."""
        settings = sample_settings(horizon_months=6)
        repo = InMemorySettingsRepository(initial=settings)

        assert await repo.load() == settings

    @pytest.mark.asyncio
    async def test_invalid_save_keeps_previous(self) -> None:
        """Verify a rejected save leaves the stored record untouched."""
        repo = InMemorySettingsRepository()
        await repo.save(sample_settings())

        with pytest.raises(SettingsValidationError):
            await repo.save(sample_settings(monthly_income=Decimal("-1")))

        assert await repo.load() == sample_settings()

    @pytest.mark.asyncio
    async def test_save_rounds_money_to_cents(self) -> None:
        """Verify the stored record is the cent-rounded one that save returns."""
        repo = InMemorySettingsRepository()

        stored = await repo.save(sample_settings(monthly_income=Decimal("3000.005")))

        assert stored.monthly_income == Decimal("3000.00")
        assert await repo.load() == stored


class TestJsonSettingsRepository:
    """Tests for the JSON file store."""

    def setup_method(self) -> None:
        """Create a scratch directory for each test."""
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self._tmpdir.name) / "settings" / "household.json"

    def teardown_method(self) -> None:
        """Remove the scratch directory."""
        self._tmpdir.cleanup()

    @pytest.mark.asyncio
    async def test_missing_file_returns_defaults(self) -> None:
        """Verify load-or-default when nothing has been saved."""
        repo = JsonSettingsRepository(self.path)

        assert await repo.load() == default_settings()
        assert not self.path.exists()

    @pytest.mark.asyncio
    async def test_save_then_load_new_instance(self) -> None:
        """Verify settings survive across repository instances."""
        settings = sample_settings()

        await JsonSettingsRepository(self.path).save(settings)
        loaded = await JsonSettingsRepository(self.path).load()

        assert loaded == settings

    @pytest.mark.asyncio
    async def test_saved_file_is_readable_json(self) -> None:
        """Verify the stored file uses string amounts and snake_case keys."""
        repo = JsonSettingsRepository(self.path)

        await repo.save(sample_settings())

        data = json.loads(repo.path.read_text(encoding="utf-8"))
        assert data["monthly_income"] == "4200.00"
        assert data["debts"][0]["name"] == "Car"

    @pytest.mark.asyncio
    async def test_save_replaces_previous_record(self) -> None:
        """Verify a second save overwrites the first without leftovers."""
        repo = JsonSettingsRepository(self.path)

        await repo.save(sample_settings())
        await repo.save(sample_settings(horizon_months=3))

        assert (await repo.load()).horizon_months == 3
        assert [p.name for p in self.path.parent.iterdir()] == ["household.json"]

    @pytest.mark.asyncio
    async def test_invalid_save_rejected(self) -> None:
        """Verify invalid settings are never written."""
        repo = JsonSettingsRepository(self.path)

        with pytest.raises(SettingsValidationError):
            await repo.save(sample_settings(horizon_months=0))

        assert not self.path.exists()

    @pytest.mark.asyncio
    async def test_invalid_stored_record_raises(self) -> None:
        """Verify a hand-edited invalid file is reported, not defaulted."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({
            "current_balance": "100",
            "monthly_income": "-5",
            "monthly_fixed_expenses": "10",
            "monthly_variable_expenses": "10",
        }), encoding="utf-8")

        with pytest.raises(SettingsValidationError) as excinfo:
            await JsonSettingsRepository(self.path).load()

        assert excinfo.value.errors[0].field_name == "monthly_income"

    @pytest.mark.asyncio
    async def test_malformed_file_raises(self) -> None:
        """Verify a corrupt file raises ValueError."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ValueError):
            await JsonSettingsRepository(self.path).load()

    @pytest.mark.asyncio
    async def test_exponent_form_amount_reloads(self) -> None:
        """Verify a normalised Decimal such as 1.0E+4 is stored readably."""
        repo = JsonSettingsRepository(self.path)
        amount = Decimal("1000").normalize() * 10

        stored = await repo.save(sample_settings(
            current_balance=amount,
            investment_return_annual=Decimal("1E-5"),
        ))

        data = json.loads(self.path.read_text(encoding="utf-8"))
        assert data["current_balance"] == "10000.00"
        assert data["investment_return_annual"] == "0.00001"
        assert await repo.load() == stored

    @pytest.mark.asyncio
    async def test_sub_cent_amounts_reload_as_saved(self) -> None:
        """Verify load after save returns exactly what save returned."""
        repo = JsonSettingsRepository(self.path)

        stored = await repo.save(sample_settings(
            monthly_income=Decimal("3000.005"),
            debts=(Debt(Decimal("99.999"), Decimal("10.125"), Decimal("0.04375")),),
        ))
        loaded = await JsonSettingsRepository(self.path).load()

        assert stored.monthly_income == Decimal("3000.00")
        assert stored.debts[0].balance == Decimal("100.00")
        assert loaded == stored
