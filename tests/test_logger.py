# tests/test_logger.py
"""Test the logging setup and the apply failure report"""

from tagstage.core.logger import get_logger, log_apply_failure, setup_logging, shutdown_logging


class TestLogging:
    """Test log files"""

    def test_log_files_written(self, temp_dir):
        logs_dir = setup_logging(temp_dir)
        logger = get_logger("tagstage.test")
        try:
            logger.info("staged an edit")
            log_apply_failure(logger, 7, "/music/a.mp3", "disk full")
        finally:
            shutdown_logging()

        full_log = next(logs_dir.glob("log_full_*.log")).read_text(encoding="utf-8")
        errors_log = next(logs_dir.glob("log_errors_*.log")).read_text(encoding="utf-8")
        report = next(logs_dir.glob("apply_failures_*.log")).read_text(encoding="utf-8")

        assert "staged an edit" in full_log
        assert "staged an edit" not in errors_log
        assert "disk full" in errors_log
        assert report == "#7 /music/a.mp3\ndisk full\n\n"
