"""kp builder {create, patch, save, delete} for namespaced builders."""

import argparse
from typing import Any

from kpcli.builder.order import read_order
from kpcli.builder.spec import new_builder_spec, update_builder_spec
from kpcli.commands import CommandSession, add_name_argument, require
from kpcli.core.context import add_execution_flags
from kpcli.core.models import Builder
from kpcli.exceptions import NotFoundError


def register(subparsers: Any) -> None:
    group = subparsers.add_parser(
        "builder", aliases=["bldr", "builders"],
        help="Builder commands",
    )
    group.set_defaults(handler=None, help_parser=group)
    verbs = group.add_subparsers(dest="verb", metavar="Command")

    create = verbs.add_parser("create", help="Create a builder")
    _add_common(create)
    _add_builder_flags(create)
    add_execution_flags(create)
    create.set_defaults(handler=run_create)

    patch = verbs.add_parser("patch", help="Patch an existing builder configuration")
    _add_common(patch)
    patch.add_argument("-s", "--stack", default="", help="stack resource to use")
    patch.add_argument("--store", default="", help="buildpack store to use")
    patch.add_argument("--order", default="", help="path to buildpack order yaml")
    add_execution_flags(patch)
    patch.set_defaults(handler=run_patch)

    save = verbs.add_parser("save", help="Create or patch a builder")
    _add_common(save)
    _add_builder_flags(save)
    add_execution_flags(save)
    save.set_defaults(handler=run_save)

    delete = verbs.add_parser("delete", help="Delete a builder")
    _add_common(delete)
    add_execution_flags(delete, output=False, wait=False)
    delete.set_defaults(handler=run_delete)


def _add_common(parser: argparse.ArgumentParser) -> None:
    add_name_argument(parser, "builder")
    parser.add_argument("-n", "--namespace", default=None,
                        help="kubernetes namespace (defaults to the configured namespace)")


def _add_builder_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-t", "--tag", default="", help="registry location where the builder will be created")
    parser.add_argument("-s", "--stack", default="", help="stack resource to use (default \"default\")")
    parser.add_argument("--store", default="", help="buildpack store to use (default \"default\")")
    parser.add_argument("--order", default="", help="path to buildpack order yaml")
    parser.add_argument("--service-account", default=None,
                        help="service account used to push the builder (default \"default\")")


def _namespace(args: argparse.Namespace, session: CommandSession) -> str:
    return args.namespace or session.config.namespace


def _new_builder(args: argparse.Namespace, namespace: str) -> Builder:
    tag = require(args.tag, "--tag")
    order = read_order(require(args.order, "--order"))
    builder = Builder.new(args.name, namespace)
    builder.spec = new_builder_spec(tag, args.stack or "default", args.store or "default", order)
    builder.spec["serviceAccount"] = args.service_account or "default"
    return builder


def run_create(args: argparse.Namespace, session: CommandSession) -> None:
    session.engine.create(_new_builder(args, _namespace(args, session)))


def run_patch(args: argparse.Namespace, session: CommandSession) -> None:
    order = read_order(args.order) if args.order else None

    observed = session.store.get(Builder, _namespace(args, session), args.name)
    desired = observed.deep_copy()
    update_builder_spec(desired.spec, stack=args.stack, store=args.store, order=order)

    session.engine.patch(observed, desired)


def run_save(args: argparse.Namespace, session: CommandSession) -> None:
    namespace = _namespace(args, session)
    order = read_order(args.order) if args.order else None

    try:
        existing = session.store.get(Builder, namespace, args.name)
    except NotFoundError:
        existing = None

    if existing is None:
        desired = _new_builder(args, namespace)
    else:
        desired = existing.deep_copy()
        update_builder_spec(
            desired.spec, tag=args.tag, stack=args.stack, store=args.store, order=order,
            service_account=args.service_account,
        )

    session.engine.save(existing, desired)


def run_delete(args: argparse.Namespace, session: CommandSession) -> None:
    session.engine.delete(Builder.new(args.name, _namespace(args, session)))
