#!/usr/bin/env python3
"""
KPCLI CLI - Command Entry Point
-------------------------------
Parses the command line, builds the per-invocation session (config,
execution mode, output router, store, waiter, engine) and dispatches to
the selected resource command.

main() is the error boundary: every KpError becomes a one-line message
on stderr and a non-zero exit code, never a stack trace.
"""

import argparse
import logging
import sys
from typing import Callable, List, Mapping, Optional, TextIO

from rich.console import Console
from rich.markup import escape

from kpcli import __version__
from kpcli.cli import exit_codes
from kpcli.cli.output import OutputRouter
from kpcli.commands import CommandSession, builder, clusterbuilder
from kpcli.config import Config
from kpcli.core.context import ExecutionMode
from kpcli.core.engine import ConvergenceEngine
from kpcli.core.waiter import ConvergenceWaiter
from kpcli.exceptions import KpError
from kpcli.k8s.store import KubectlStore
from kpcli.logging_config import configure_logging

logger = logging.getLogger("kpcli.cli")

StoreFactory = Callable[[Config], object]


def _kubectl_store(config: Config) -> KubectlStore:
    return KubectlStore(kubectl=config.kubectl, kubeconfig=config.kubeconfig, context=config.context)


class KpCLI:
    """
    Translates a kp command line into one convergence cycle.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None,
                 store_factory: Optional[StoreFactory] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.store_factory = store_factory or _kubectl_store
        self.environ = environ
        self.parser = argparse.ArgumentParser(
            prog="kp",
            description="kp - manage kpack builders on a Kubernetes cluster",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self._setup_args()

    def _setup_args(self):
        """Configures the global flags and the resource command groups."""
        self.parser.add_argument("-V", "--version", action="version", version=f"kp v{__version__}")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics to stderr")
        self.parser.add_argument("--kubeconfig", default=None, help="Path to the kubeconfig file")
        self.parser.add_argument("--context", default=None, help="Kubeconfig context to use")
        self.parser.add_argument("--wait-timeout", type=float, default=None, metavar="SECONDS",
                                 help="Give up waiting for readiness after this many seconds")
        self.parser.set_defaults(handler=None, help_parser=self.parser)

        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")
        clusterbuilder.register(subparsers)
        builder.register(subparsers)

    def _session(self, args: argparse.Namespace) -> CommandSession:
        config = Config.load(environ=self.environ).with_overrides(
            kubeconfig=args.kubeconfig,
            context=args.context,
            wait_timeout=args.wait_timeout,
        )
        mode = ExecutionMode.from_args(args)
        router = OutputRouter(mode, out=self.out, err=self.err)
        store = self.store_factory(config)
        waiter = ConvergenceWaiter(store, timeout=config.wait_timeout, on_progress=router.emit_line)
        engine = ConvergenceEngine(store, router, waiter)
        return CommandSession(config=config, store=store, router=router, engine=engine)

    def run(self, argv: List[str]) -> int:
        """Primary routing entry point."""
        args = self.parser.parse_args(argv)
        if args.handler is None:
            args.help_parser.print_help(file=self.out)
            return exit_codes.SUCCESS

        configure_logging(verbose=args.verbose, stream=self.err)
        session = self._session(args)
        logger.debug("running %s %s with %s", args.command, args.verb, session.router.mode)
        args.handler(args, session)
        return exit_codes.SUCCESS


def main(argv: Optional[List[str]] = None, *, out: Optional[TextIO] = None,
         err: Optional[TextIO] = None, store_factory: Optional[StoreFactory] = None,
         environ: Optional[Mapping[str, str]] = None) -> int:
    """Runs kp and returns its exit code."""
    console = Console(file=err if err is not None else sys.stderr, highlight=False, soft_wrap=True)
    try:
        cli_app = KpCLI(out=out, err=err, store_factory=store_factory, environ=environ)
        return cli_app.run(sys.argv[1:] if argv is None else argv)
    except KpError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        if exc.hint:
            console.print(f"[dim]Hint:[/dim] {escape(exc.hint)}")
        return exit_codes.GENERAL_ERROR
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        return exit_codes.KEYBOARD_INTERRUPT
    except SystemExit as exc:
        # argparse exits on --help, --version (0) and usage errors (2).
        if exc.code is None:
            return exit_codes.SUCCESS
        if exc.code == 2:
            return exit_codes.USAGE_ERROR
        return exc.code if isinstance(exc.code, int) else exit_codes.GENERAL_ERROR
    except Exception as exc:  # noqa: BLE001
        logger.debug("unexpected failure", exc_info=True)
        console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
        return exit_codes.UNEXPECTED_ERROR


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
