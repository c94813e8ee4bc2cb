from __future__ import annotations

from functools import lru_cache
from typing import Any

from cargodock.core.config import settings
from cargodock.services import (
    appointment_import_service,
    container_update_import_service,
    customer_import_service,
    driver_import_service,
    fee_import_service,
    location_import_service,
    order_import_service,
    trailer_import_service,
)
from cargodock.services.imports.pipeline import ImportConfig, ImportMode, ImportService, MergeImportService

_CONFIGS: tuple[ImportConfig, ...] = (
    location_import_service.CONFIG,
    customer_import_service.CONFIG,
    driver_import_service.CONFIG,
    trailer_import_service.CONFIG,
    fee_import_service.CONFIG,
    order_import_service.CONFIG,
    appointment_import_service.CONFIG,
    container_update_import_service.CONFIG,
)


@lru_cache(maxsize=1)
def _services() -> dict[str, ImportService]:
    services: dict[str, ImportService] = {}
    for config in _CONFIGS:
        service_cls = MergeImportService if config.mode is ImportMode.UPDATE else ImportService
        services[config.key] = service_cls(config)
    return services


def get_import_service(import_key: str) -> ImportService | None:
    if not settings.IMPORTS_ENABLED:
        return None
    wanted = (import_key or "").strip().lower()
    return _services().get(wanted)


def list_imports() -> list[dict[str, Any]]:
    if not settings.IMPORTS_ENABLED:
        return []
    rows: list[dict[str, Any]] = []
    for service in _services().values():
        config = service.config
        rows.append(
            {
                "import_key": config.key,
                "label": config.label,
                "mode": config.mode.value,
                "sheets": [source.name for source in config.sources],
                "required_roles": sorted(config.required_roles),
            }
        )
    return rows
