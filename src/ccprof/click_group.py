"""Click group used by the ccprof command tree.

ccprof commands are short and mostly positional (`ccprof use work`,
`ccprof backup restore ID`), so a typo is more useful answered with the
help of the command that was meant than with click's one-line usage
error. CcprofGroup prints the error followed by that command's help, and
the `backup` and `config` subgroups inherit the same behavior.
"""

import sys
from typing import Any

import click

USAGE_ERRORS = (
    click.exceptions.UsageError,
    click.exceptions.BadParameter,
    click.exceptions.MissingParameter,
)


def _exit_code(error: click.exceptions.UsageError) -> int:
    return getattr(error, "exit_code", 1)


class CcprofGroup(click.Group):
    """Group that answers usage errors with the help of the failing command.

    - Unknown commands print the group's help (`ccprof frobnicate`).
    - Bad or missing arguments print the subcommand's help
      (`ccprof backup restore` without an ID).
    """

    def main(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().main(*args, **kwargs)
        except USAGE_ERRORS as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            if e.ctx is not None:
                click.echo("")
                click.echo(e.ctx.get_help())
                e.ctx.exit(_exit_code(e))
            sys.exit(_exit_code(e))

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except USAGE_ERRORS as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            # Prefer the subcommand's context so its own options are shown
            error_ctx = e.ctx or ctx
            click.echo("")
            click.echo(error_ctx.get_help())
            error_ctx.exit(_exit_code(e))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            # Parameter errors are reported by invoke() with the subcommand's help
            if isinstance(e, click.exceptions.MissingParameter | click.exceptions.BadParameter):
                raise
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            ctx.exit(1)


CcprofGroup.group_class = CcprofGroup
