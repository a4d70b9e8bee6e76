"""Quote-aware splitting of command strings into argument vectors.

A quote character (``"`` or ``'``) only opens a quoted span when it starts a
token, and only closes it when it ends a token. Quotes anywhere else are kept
as literal characters, so ``a"b c`` splits into ``['a"b', 'c']``.
"""

from __future__ import annotations

from typing import Final, Iterable

from polyshell.errors import InvalidArgumentError

QUOTE_CHARS: Final[frozenset[str]] = frozenset({'"', "'"})


def split_command(command: str) -> list[str]:
    """Split a command string into arguments.

    Args:
        command: Raw command string.

    Returns:
        The argument vector. Empty or whitespace-only input yields an empty list.

    Raises:
        InvalidArgumentError: If command is None.
    """

    if command is None:
        raise InvalidArgumentError("Command must not be None.")

    text = command.strip()
    if not text:
        return []
    if not any(char.isspace() for char in text):
        return [text]

    args: list[str] = []
    length = len(text)
    quote: str | None = None
    start = -1
    opened_at = -1
    literal_at = -1
    index = 0

    while index < length:
        char = text[index]
        ends_token = index == length - 1 or text[index + 1].isspace()

        if quote is not None:
            if char == quote and ends_token:
                args.append(text[start:index])
                quote = None
                start = -1
        elif start == -1:
            if char.isspace():
                pass
            elif char in QUOTE_CHARS and index != literal_at:
                quote = char
                opened_at = index
                start = index + 1
            else:
                start = index
                if ends_token:
                    args.append(text[start : index + 1])
                    start = -1
        elif ends_token:
            args.append(text[start : index + 1])
            start = -1

        index += 1
        if index == length and quote is not None:
            # Unterminated quote: rescan from it, treating it as a literal.
            literal_at = index = opened_at
            quote = None
            start = -1

    return args


def join_command(args: Iterable[str]) -> str:
    """Render arguments as a string that ``split_command`` splits back.

    Arguments containing whitespace are wrapped in a quote character that does
    not close early inside them.

    Raises:
        InvalidArgumentError: If an argument is empty or cannot be quoted.
    """

    parts: list[str] = []
    for arg in args:
        if not arg:
            raise InvalidArgumentError("Empty arguments cannot be joined.")
        if not any(char.isspace() for char in arg):
            parts.append(arg)
            continue
        quote = next((q for q in ('"', "'") if not _closes_early(arg, q)), None)
        if quote is None:
            raise InvalidArgumentError(f"Argument cannot be quoted: {arg!r}")
        parts.append(f"{quote}{arg}{quote}")
    return " ".join(parts)


def _closes_early(arg: str, quote: str) -> bool:
    return any(
        char == quote and (index == len(arg) - 1 or arg[index + 1].isspace())
        for index, char in enumerate(arg)
    )
