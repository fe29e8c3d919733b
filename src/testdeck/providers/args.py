"""Command-line argument inspection helpers shared by providers."""

from __future__ import annotations

from collections.abc import Collection, Sequence


def _option_name(arg: str) -> str:
    return arg.split("=", 1)[0] if arg.startswith("--") else arg


class ArgumentsHelper:
    """Inspect and filter framework argument lists.

    Understands ``--opt value``, ``--opt=value`` and short flags. Everything
    after a bare ``--`` is positional.
    """

    @staticmethod
    def get_option_values(args: Sequence[str], option: str) -> list[str]:
        """Return every value given for ``option``, in order."""
        values: list[str] = []
        it = iter(args)
        for arg in it:
            if arg == "--":
                break
            if arg == option:
                value = next(it, None)
                if value is not None:
                    values.append(value)
            elif arg.startswith(option + "=") and option.startswith("--"):
                values.append(arg.split("=", 1)[1])
        return values

    @staticmethod
    def get_positional_arguments(
        args: Sequence[str],
        options_with_arguments: Collection[str] = (),
        options_without_arguments: Collection[str] = (),
    ) -> list[str]:
        """Return the arguments that are neither options nor option values.

        Unknown options are treated as flags.
        """
        positional: list[str] = []
        index = 0
        while index < len(args):
            arg = args[index]
            if arg == "--":
                positional.extend(args[index + 1 :])
                break
            if arg.startswith("-") and arg != "-":
                name = _option_name(arg)
                if name in options_with_arguments and "=" not in arg:
                    index += 1
            else:
                positional.append(arg)
            index += 1
        return positional

    @staticmethod
    def filter_arguments(
        args: Sequence[str],
        options_with_arguments: Collection[str] = (),
        options_without_arguments: Collection[str] = (),
    ) -> list[str]:
        """Remove the named options (and their values) from ``args``."""
        kept: list[str] = []
        index = 0
        while index < len(args):
            arg = args[index]
            if arg == "--":
                kept.extend(args[index:])
                break
            name = _option_name(arg)
            if name in options_with_arguments:
                if "=" not in arg:
                    index += 1
            elif name not in options_without_arguments:
                kept.append(arg)
            index += 1
        return kept

    @classmethod
    def remove_positional_arguments(
        cls,
        args: Sequence[str],
        options_with_arguments: Collection[str] = (),
    ) -> list[str]:
        """Drop positional arguments, keeping options and their values."""
        kept: list[str] = []
        index = 0
        while index < len(args):
            arg = args[index]
            if arg == "--":
                break
            if arg.startswith("-") and arg != "-":
                kept.append(arg)
                if _option_name(arg) in options_with_arguments and "=" not in arg:
                    if index + 1 < len(args):
                        kept.append(args[index + 1])
                    index += 1
            index += 1
        return kept
