import logging
import sys

from collab_history.config import settings


class _SafeExtraFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.doc_id = getattr(record, "doc_id", "-")
        record.version = getattr(record, "version", "-")
        record.op_index = getattr(record, "op_index", "-")
        return super().format(record)


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    formatter = _SafeExtraFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s doc_id=%(doc_id)s version=%(version)s op_index=%(op_index)s",
    )
    handler.setFormatter(formatter)

    root.setLevel(level or settings.log_level)
    root.addHandler(handler)
