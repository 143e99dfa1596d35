# src/pipeshell/core/parser.py
from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from pipeshell.model import ASSIGNMENT_COMMAND, CommandDescription

logger = logging.getLogger(__name__)

# Separators and operators of the line grammar.
SEQUENCE_SEPARATOR = ";"
PIPE_SEPARATOR = "|"
REDIRECT_OPERATORS: set[str] = {"<", ">", ">>"}
# Left-hand side of NAME=value
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Per-character origin markers used in Token.quoting
UNQUOTED = " "
SINGLE = "'"
DOUBLE = '"'
_WHITESPACE = " \t"


class Token(NamedTuple):
    """
    One word of a stage.

    `quoting` has one marker per character of `text` telling where that
    character came from (UNQUOTED, SINGLE or DOUBLE).
    """
    text: str
    single_quoted: bool
    double_quoted: bool
    quoting: str


def split_outside_quotes(text: str, separator: str) -> List[str]:
    """Splits `text` on `separator` wherever it is not inside a quoted run."""
    parts: List[str] = []
    current: List[str] = []
    in_single = in_double = False

    for ch in text:
        if ch == SINGLE and not in_double:
            in_single = not in_single
        elif ch == DOUBLE and not in_single:
            in_double = not in_double
        elif ch == separator and not (in_single or in_double):
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)

    parts.append("".join(current))
    return parts


def tokenize(fragment: str) -> List[Token]:
    """
    Quote-aware scanner for one stage fragment.

    Quote delimiters are never part of a token. A token is marked as
    single- (double-) quoted only when it consists of exactly one quoted run
    and nothing else, so `'abc'` is marked while `a'b'` and `'a''b'` are not.
    An unterminated quote is closed implicitly at the end of the fragment.
    """
    tokens: List[Token] = []
    text: List[str] = []
    quoting: List[str] = []
    runs: List[str] = []
    has_unquoted = False
    started = False
    in_single = in_double = False

    def _flush() -> None:
        nonlocal text, quoting, runs, has_unquoted, started
        fully = None if has_unquoted or len(runs) != 1 else runs[0]
        tokens.append(Token("".join(text), fully == SINGLE, fully == DOUBLE, "".join(quoting)))
        text, quoting, runs = [], [], []
        has_unquoted = False
        started = False

    for ch in fragment:
        if in_single:
            if ch == SINGLE:
                in_single = False
            else:
                text.append(ch)
                quoting.append(SINGLE)
            continue

        if in_double:
            if ch == DOUBLE:
                in_double = False
            else:
                text.append(ch)
                quoting.append(DOUBLE)
            continue

        if ch == SINGLE or ch == DOUBLE:
            in_single = ch == SINGLE
            in_double = ch == DOUBLE
            runs.append(ch)
            started = True
        elif ch in _WHITESPACE:
            if started:
                _flush()
        else:
            text.append(ch)
            quoting.append(UNQUOTED)
            has_unquoted = True
            started = True

    if in_single or in_double:
        logger.debug("Unterminated quote in %r closed at end of input.", fragment)
    if started:
        _flush()

    return tokens


def _is_assignment(token: Token) -> bool:
    """NAME=value with an unquoted identifier on the left and a non-empty value."""
    if token.single_quoted or token.double_quoted:
        return False
    text = token.text
    if "=" not in text or text.startswith("=") or text.endswith("="):
        return False
    key = text.split("=", 1)[0]
    return bool(_IDENTIFIER.match(key)) and set(token.quoting[:len(key) + 1]) == {UNQUOTED}


def _is_redirect(token: Token) -> bool:
    return token.text in REDIRECT_OPERATORS and set(token.quoting) == {UNQUOTED}


def _parse_stage(tokens: List[Token]) -> Tuple[List[CommandDescription], Optional[CommandDescription]]:
    """
    Turns the tokens of one stage into its leading assignment descriptors
    and, if any words remain, one invocation descriptor (not yet marked piped).
    """
    assignments: List[CommandDescription] = []
    i = 0
    while i < len(tokens) and _is_assignment(tokens[i]):
        token = tokens[i]
        key, value = token.text.split("=", 1)
        value_quoting = token.quoting[len(key) + 1:]
        literal = set(value_quoting) == {SINGLE}
        assignments.append(CommandDescription(
            name=ASSIGNMENT_COMMAND,
            arguments=[key, value],
            single_quoted={1} if literal else set(),
        ))
        i += 1

    words: List[Token] = []
    redirects = {}
    rest = tokens[i:]
    j = 0
    while j < len(rest):
        token = rest[j]
        if not _is_redirect(token):
            words.append(token)
            j += 1
            continue

        if j + 1 >= len(rest):
            logger.debug("Dangling redirection operator '%s' dropped.", token.text)
            j += 1
            continue

        target = rest[j + 1]
        if token.text == "<":
            redirects["file_in_path"] = target.text
            redirects["in_path_literal"] = target.single_quoted
        else:
            redirects["file_out_path"] = target.text
            redirects["out_path_literal"] = target.single_quoted
            redirects["append_out"] = token.text == ">>"
        j += 2

    if not words:
        if redirects:
            logger.debug("Redirection without a command ignored: %s", redirects)
        return assignments, None

    invocation = CommandDescription(
        name=words[0].text,
        arguments=[w.text for w in words],
        single_quoted={k for k, w in enumerate(words) if w.single_quoted},
        double_quoted={k for k, w in enumerate(words) if w.double_quoted},
        **redirects,
    )
    return assignments, invocation


def parse_command_line(line: str) -> List[CommandDescription]:
    """
    Parses one input line into the ordered descriptor list of all its
    clauses and pipeline stages.

    A stage is marked `is_piped` when a later stage of the same clause
    produces an invocation; stages made only of assignments do not take
    part in the pipe chain.

    Args:
        line (str): The raw input line.

    Returns:
        List[CommandDescription]: Descriptors in execution order.
    """
    descriptions: List[CommandDescription] = []

    for clause in split_outside_quotes(line or "", SEQUENCE_SEPARATOR):
        if not clause.strip():
            continue

        stages = [
            _parse_stage(tokenize(fragment))
            for fragment in split_outside_quotes(clause, PIPE_SEPARATOR)
            if fragment.strip()
        ]

        with_invocation = [k for k, (_, invocation) in enumerate(stages) if invocation is not None]
        last_invocation = with_invocation[-1] if with_invocation else -1

        for k, (assignments, invocation) in enumerate(stages):
            descriptions.extend(assignments)
            if invocation is None:
                continue
            if k < last_invocation:
                invocation = invocation.model_copy(update={"is_piped": True})
            descriptions.append(invocation)

    return descriptions
