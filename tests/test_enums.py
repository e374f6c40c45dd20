import pytest

from memorydb.enums import (
    DBCommand,
    VerboseLevel,
    is_valid_command,
    is_valid_verbose_level,
)


@pytest.mark.parametrize("name", ["set", "update", "remove", "push", "pop"])
def test_known_commands_are_valid(name):
    assert is_valid_command(name) is True
    assert DBCommand(name).value == name


@pytest.mark.parametrize("name", ["bogus", "", "SET", "get"])
def test_unknown_commands_are_invalid(name):
    assert is_valid_command(name) is False


def test_command_members_are_valid():
    assert all(is_valid_command(command) for command in DBCommand)


def test_command_string_form():
    assert str(DBCommand.POP) == "pop"
    assert DBCommand("set") is DBCommand.SET


def test_unknown_command_lookup_raises():
    with pytest.raises(ValueError):
        DBCommand("bogus")


@pytest.mark.parametrize("name", ["debug", "info"])
def test_known_verbose_levels(name):
    assert is_valid_verbose_level(name) is True
    assert str(VerboseLevel(name)) == name


@pytest.mark.parametrize("name", ["invalid_level", "INFO", "", "warn"])
def test_unknown_verbose_levels(name):
    assert is_valid_verbose_level(name) is False