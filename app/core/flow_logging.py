import logging

from app.core.config import settings

# Category -> Settings flag. Unknown categories follow FLOW_LOGS_ENABLED only.
_CATEGORY_FLAGS = {
    "bulk_upload": "FLOW_LOGS_BULK_UPLOAD_ENABLED",
    "bulk_upload_rows": "FLOW_LOGS_BULK_UPLOAD_ROWS_ENABLED",
}


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    flag = _CATEGORY_FLAGS.get(category or "")
    if flag is None:
        return True
    return bool(getattr(settings, flag, True))


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)


def flow_debug(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.debug(msg, *args, **kwargs)
