# tests/core/test_model.py
import pytest
from pydantic import ValidationError

from pipeshell.model import ASSIGNMENT_COMMAND, CommandDescription


def test_invocation_requires_name_as_first_argument():
    with pytest.raises(ValidationError):
        CommandDescription(name="echo", arguments=[])
    with pytest.raises(ValidationError):
        CommandDescription(name="echo", arguments=["cat", "x"])


def test_assignment_requires_key_and_value():
    with pytest.raises(ValidationError):
        CommandDescription(name=ASSIGNMENT_COMMAND, arguments=["A"])
    with pytest.raises(ValidationError):
        CommandDescription(name=ASSIGNMENT_COMMAND, arguments=["A", "1"], is_piped=True)


def test_quoting_indices_must_be_in_range():
    with pytest.raises(ValidationError):
        CommandDescription(name="echo", arguments=["echo"], single_quoted={1})
    with pytest.raises(ValidationError):
        CommandDescription(name="echo", arguments=["echo", "a"], single_quoted={1}, double_quoted={1})


def test_descriptors_are_frozen():
    desc = CommandDescription(name="echo", arguments=["echo"])
    with pytest.raises(ValidationError):
        desc.name = "cat"


def test_with_arguments_keeps_metadata_and_follows_name():
    desc = CommandDescription(
        name="$CMD", arguments=["$CMD", "x"], file_out_path="out", is_piped=True, double_quoted={1}
    )
    rewritten = desc.with_arguments(["cat", "y"])
    assert rewritten.name == "cat"
    assert rewritten.arguments == ["cat", "y"]
    assert rewritten.file_out_path == "out"
    assert rewritten.is_piped is True
    assert rewritten.double_quoted == {1}
    assert desc.arguments == ["$CMD", "x"]


def test_to_command_line_quotes_when_needed():
    desc = CommandDescription(
        name="echo", arguments=["echo", "a b", "$X"], file_out_path="out.txt", append_out=True
    )
    assert desc.to_command_line() == "echo 'a b' '$X' >> out.txt"
    assignment = CommandDescription(name=ASSIGNMENT_COMMAND, arguments=["A", "x y"])
    assert assignment.to_command_line() == "A='x y'"
