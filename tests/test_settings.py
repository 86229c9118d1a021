import logging

from pydantic import ValidationError
from rich.logging import RichHandler

from diagenum.log import configure_logging
from diagenum.report import CharSet, Config, IndexType
from diagenum.settings import DiagenumSettings, get_settings


def test_settings_defaults():
    settings = DiagenumSettings()
    assert settings.color is True
    assert settings.index_type == "byte"
    assert settings.char_set == "unicode"
    assert settings.tab_width == 4


def test_config_default_reads_environment(monkeypatch):
    monkeypatch.setenv("DIAGENUM_INDEX_TYPE", "char")
    monkeypatch.setenv("DIAGENUM_CHAR_SET", "ascii")
    monkeypatch.setenv("DIAGENUM_COLOR", "false")
    get_settings.cache_clear()
    try:
        config = Config.default()
    finally:
        get_settings.cache_clear()

    assert config == Config(
        index_type=IndexType.CHAR, char_set=CharSet.ASCII, color=False, compact=False, tab_width=4
    )


def test_settings_validate_ranges(monkeypatch):
    monkeypatch.setenv("DIAGENUM_TAB_WIDTH", "0")
    try:
        DiagenumSettings()
        assert False, "tab width below 1 should be rejected"
    except ValidationError:
        pass


def test_configure_logging_attaches_one_rich_handler():
    logger = logging.getLogger("diagenum")
    previous_level = logger.level
    try:
        configure_logging("debug")
        configure_logging(logging.INFO)
        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.INFO
    finally:
        for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
            logger.removeHandler(handler)
        logger.setLevel(previous_level)
