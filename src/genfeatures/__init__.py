# GenFeatures package init
import logging
import os

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Renders the ``extra={...}`` context of a record as trailing ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS and not k.startswith("_")}
        if not context:
            return line
        return line + " " + " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))


def _parse_level(raw, default: int) -> int:
    if not raw or not str(raw).strip():
        return default
    level = logging.getLevelName(str(raw).strip().upper())
    return level if isinstance(level, int) else default


def _level_overrides() -> dict:
    """Per-logger levels from ``GENFEATURES_LOG_LEVELS=genfeatures.llm=DEBUG,genfeatures.stream=WARNING``."""
    overrides = {"genfeatures.llm": os.getenv("GENFEATURES_LLM_LOG_LEVEL")}
    for item in (os.getenv("GENFEATURES_LOG_LEVELS") or "").split(","):
        name, sep, level = item.partition("=")
        if sep and name.strip():
            overrides[name.strip()] = level
    return {name: level for name, level in overrides.items() if level}


def _configure_logging() -> None:
    base_level = _parse_level(os.getenv("GENFEATURES_LOG_LEVEL"), logging.INFO)
    logger = logging.getLogger("genfeatures")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ContextFormatter("[GENFEATURES][%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(base_level)
    for name, raw in _level_overrides().items():
        logging.getLogger(name).setLevel(_parse_level(raw, base_level))


_configure_logging()
