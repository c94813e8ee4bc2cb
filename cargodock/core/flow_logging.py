import logging

from cargodock.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "import":
        return settings.FLOW_LOGS_IMPORT_ENABLED
    if category == "allocation":
        return settings.FLOW_LOGS_ALLOCATION_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
