import logging

from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.logger import build_file_handler, get_logger


def test_file_handler_follows_settings(tmp_path):
    config = Settings(_env_file=None, log_dir=str(tmp_path / "nested" / "logs"), log_level="warning", log_backup_count=2)

    handler = build_file_handler(config)
    try:
        assert handler.baseFilename == str(tmp_path / "nested" / "logs" / "app.log")
        assert handler.level == logging.WARNING
        assert handler.backupCount == 2
    finally:
        handler.close()


def test_child_loggers_share_the_package_logger():
    child = get_logger("ledger")
    assert child.name == "hotel_concierge.ledger"
    assert child.parent is logging.getLogger("hotel_concierge")
