"""Tests for the shared loguru configuration."""

from mageaudit.utils.logging import configure_file_logging, logger


class TestFileLogging:
    """Persistent log sink added by embedding callers."""

    def test_writes_records_at_or_above_level(self, tmp_path):
        log_dir = tmp_path / "logs"
        handler_id = configure_file_logging(log_dir, level="WARNING")
        try:
            logger.debug("per-file progress")
            logger.warning("Skipping /shop/a.php: permission denied")
        finally:
            logger.remove(handler_id)

        content = (log_dir / "mageaudit.log").read_text(encoding="utf-8")
        assert "WARNING" in content
        assert "Skipping /shop/a.php: permission denied" in content
        assert "per-file progress" not in content

    def test_handler_can_be_removed(self, tmp_path):
        handler_id = configure_file_logging(tmp_path, level="INFO")
        logger.remove(handler_id)
        logger.info("after removal")
        assert "after removal" not in (tmp_path / "mageaudit.log").read_text(encoding="utf-8")
