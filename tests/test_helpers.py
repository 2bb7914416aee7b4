import logging

import pytest

from branch_sim.errors import ConfigError, ParseError
from branch_sim.utils import (
    check_int_range,
    check_power_of_two,
    format_bits,
    format_number,
    load_config,
    setup_logging,
)


def test_load_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("warmup: 10\npredictors:\n  - variant: gshare\n")
    assert load_config(path) == {'warmup': 10, 'predictors': [{'variant': 'gshare'}]}


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("predictors: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(bad)

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(listing)

    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_config(empty) == {}


def test_check_int_range():
    assert check_int_range(5, "x", 0, 10) == 5
    for value in (-1, 11, True, 2.5, "3"):
        with pytest.raises(ConfigError):
            check_int_range(value, "x", 0, 10)


def test_check_power_of_two():
    assert check_power_of_two(1, "size") == 1
    assert check_power_of_two(1024, "size") == 1024
    with pytest.raises(ConfigError, match="power of two"):
        check_power_of_two(96, "size")


def test_formatting():
    assert format_bits(2048) == "2048 bits"
    assert format_bits(16384) == "2.00 KiB"
    assert format_number(999) == "999.00"
    assert format_number(1500) == "1.50K"
    assert format_number(2_500_000, precision=1) == "2.5M"


def test_setup_logging_replaces_handlers(tmp_path):
    setup_logging("DEBUG")
    logger = setup_logging("WARNING", tmp_path / "logs" / "run.log")
    try:
        assert logger.name == "branch_sim"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2
        assert (tmp_path / "logs" / "run.log").exists()
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_parse_error_location():
    error = ParseError("bad outcome", source="t.txt", line=4)
    assert str(error) == "t.txt, line 4: bad outcome"
    assert isinstance(error, ValueError)
    assert str(ParseError("short", offset=0)) == "offset 0: short"
