import logging
from pathlib import Path

from breather.logging_utils import setup_logging


def test_setup_logging_writes_to_log_dir(tmp_path: Path) -> None:
    logger, log_path = setup_logging(str(tmp_path / "logs"))
    assert logger.name == "breather"
    assert Path(log_path) == tmp_path / "logs" / "breather.log"
    assert (tmp_path / "logs").is_dir()


def test_verbose_enables_debug(tmp_path: Path) -> None:
    logger, _ = setup_logging(str(tmp_path), verbose=True)
    assert logger.level == logging.DEBUG
    setup_logging(str(tmp_path))
    assert logger.level == logging.INFO
