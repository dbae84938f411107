"""
FlowCast - Settings Repository Module.

Single-record persistence for a household's projection settings.
Every store exposes the same asynchronous interface so callers do
not care whether the record lives in memory or on disk.

Classes:
    SettingsRepository: Abstract async load/save interface.
    InMemorySettingsRepository: Process-local store.
    JsonSettingsRepository: JSON file store.
"""

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from flowcast.audit import AuditLogger
from flowcast.schema import ProjectionSettings, default_settings
from flowcast.validator import SettingsValidationError, SettingsValidator


class SettingsRepository(ABC):
    """
    Load-or-default / save access to the household settings record.

    Implementations return default_settings() until something is saved,
    and check a record before storing it.
    """

    @abstractmethod
    async def load(self) -> ProjectionSettings:
        """Returns the stored settings, or the defaults if none exist."""

    @abstractmethod
    async def save(self, settings: ProjectionSettings) -> ProjectionSettings:
        """
        Stores the settings record, replacing any previous one.

        Money fields are rounded to cents before storing.

        Returns:
            The settings as stored.

        Raises:
            SettingsValidationError: If settings violate any constraint.
        """


class InMemorySettingsRepository(SettingsRepository):
    """Keeps the settings record in memory. Useful for tests and previews."""

    def __init__(
        self,
        initial: Optional[ProjectionSettings] = None,
        validator: Optional[SettingsValidator] = None
    ):
        self._settings = initial
        self._validator = validator or SettingsValidator()

    async def load(self) -> ProjectionSettings:
        if self._settings is None:
            return default_settings()
        return self._settings

    async def save(self, settings: ProjectionSettings) -> ProjectionSettings:
        self._validator.check(settings)
        settings = self._validator.quantise_money(settings)
        self._settings = settings
        return settings


class JsonSettingsRepository(SettingsRepository):
    """
    Stores the settings record as a JSON file.

    Reads go through SettingsValidator, so a hand-edited file is held to
    the same rules as form input. Writes replace the file atomically.
    File access runs in a worker thread to keep the event loop free.

    Example:
        >>> repo = JsonSettingsRepository("household.json")
        >>> settings = asyncio.run(repo.load())
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        validator: Optional[SettingsValidator] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        """
        Initialises the JsonSettingsRepository.

        Args:
            file_path: Location of the settings JSON file.
            validator: Settings validator. Defaults to a new SettingsValidator.
            audit_logger: Serialiser. Defaults to a new AuditLogger.
        """
        self._path = Path(file_path)
        self._validator = validator or SettingsValidator()
        self._audit = audit_logger or AuditLogger()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> ProjectionSettings:
        """
        Loads settings from the JSON file.

        Returns:
            Stored settings, or default_settings() if the file does not exist.

        Raises:
            ValueError: If the file is not a JSON object.
            SettingsValidationError: If the stored record is invalid.
        """
        return await asyncio.to_thread(self._load_sync)

    async def save(self, settings: ProjectionSettings) -> ProjectionSettings:
        """
        Validates and writes settings to the JSON file.

        Raises:
            SettingsValidationError: If settings violate any constraint.
        """
        self._validator.check(settings)
        settings = self._validator.quantise_money(settings)
        await asyncio.to_thread(self._write_sync, settings)
        return settings

    def _load_sync(self) -> ProjectionSettings:
        if not self._path.exists():
            return default_settings()

        result = self._validator.validate_file(self._path)
        if not result.is_valid:
            raise SettingsValidationError(result.errors)
        return result.settings

    def _write_sync(self, settings: ProjectionSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._audit.serialise_settings(settings)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
