#!/usr/bin/env python3
"""
KPCLI CLUSTER BUILDER COMMANDS
------------------------------
kp clusterbuilder {create, patch, save, delete}

Cluster builders are cluster-scoped: no namespace is ever sent.
"""

import argparse
from typing import Any

from kpcli.builder.order import read_order
from kpcli.builder.spec import new_builder_spec, update_builder_spec
from kpcli.commands import CommandSession, add_name_argument, require
from kpcli.core.context import add_execution_flags
from kpcli.core.models import ClusterBuilder
from kpcli.exceptions import NotFoundError

DEFAULT_SERVICE_ACCOUNT = "default"
DEFAULT_SERVICE_ACCOUNT_NAMESPACE = "kpack"


def register(subparsers: Any) -> None:
    """Adds the clusterbuilder command group."""
    group = subparsers.add_parser(
        "clusterbuilder", aliases=["cb", "clusterbuilders"],
        help="Cluster builder commands",
    )
    group.set_defaults(handler=None, help_parser=group)
    verbs = group.add_subparsers(dest="verb", metavar="Command")

    create = verbs.add_parser("create", help="Create a cluster builder")
    add_name_argument(create, "cluster builder")
    _add_builder_flags(create)
    add_execution_flags(create)
    create.set_defaults(handler=run_create)

    patch = verbs.add_parser("patch", help="Patch an existing cluster builder configuration")
    add_name_argument(patch, "cluster builder")
    patch.add_argument("-s", "--stack", default="", help="stack resource to use")
    patch.add_argument("--store", default="", help="buildpack store to use")
    patch.add_argument("--order", default="", help="path to buildpack order yaml")
    add_execution_flags(patch)
    patch.set_defaults(handler=run_patch)

    save = verbs.add_parser("save", help="Create or patch a cluster builder")
    add_name_argument(save, "cluster builder")
    _add_builder_flags(save)
    add_execution_flags(save)
    save.set_defaults(handler=run_save)

    delete = verbs.add_parser("delete", help="Delete a cluster builder")
    add_name_argument(delete, "cluster builder")
    add_execution_flags(delete, output=False, wait=False)
    delete.set_defaults(handler=run_delete)


def _add_builder_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-t", "--tag", default="", help="registry location where the builder will be created")
    parser.add_argument("-s", "--stack", default="", help="stack resource to use (default \"default\")")
    parser.add_argument("--store", default="", help="buildpack store to use (default \"default\")")
    parser.add_argument("--order", default="", help="path to buildpack order yaml")
    parser.add_argument("--service-account-name", default=None,
                        help="service account used to push the builder (default \"default\")")
    parser.add_argument("--service-account-namespace", default=None,
                        help=f"namespace of the service account (default \"{DEFAULT_SERVICE_ACCOUNT_NAMESPACE}\")")


def _new_cluster_builder(args: argparse.Namespace) -> ClusterBuilder:
    tag = require(args.tag, "--tag")
    order = read_order(require(args.order, "--order"))
    builder = ClusterBuilder.new(args.name)
    builder.spec = new_builder_spec(tag, args.stack or "default", args.store or "default", order)
    builder.spec["serviceAccountRef"] = {
        "name": args.service_account_name or DEFAULT_SERVICE_ACCOUNT,
        "namespace": args.service_account_namespace or DEFAULT_SERVICE_ACCOUNT_NAMESPACE,
    }
    return builder


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def run_create(args: argparse.Namespace, session: CommandSession) -> None:
    session.engine.create(_new_cluster_builder(args))


def run_patch(args: argparse.Namespace, session: CommandSession) -> None:
    # Read the order file first so a bad file aborts before any remote call.
    order = read_order(args.order) if args.order else None

    observed = session.store.get(ClusterBuilder, "", args.name)
    desired = observed.deep_copy()
    update_builder_spec(desired.spec, stack=args.stack, store=args.store, order=order)

    session.engine.patch(observed, desired)


def run_save(args: argparse.Namespace, session: CommandSession) -> None:
    order = read_order(args.order) if args.order else None

    try:
        existing = session.store.get(ClusterBuilder, "", args.name)
    except NotFoundError:
        existing = None

    if existing is None:
        desired = _new_cluster_builder(args)
    else:
        desired = existing.deep_copy()
        update_builder_spec(
            desired.spec, tag=args.tag, stack=args.stack, store=args.store, order=order,
            service_account_name=args.service_account_name,
            service_account_namespace=args.service_account_namespace,
        )

    session.engine.save(existing, desired)


def run_delete(args: argparse.Namespace, session: CommandSession) -> None:
    session.engine.delete(ClusterBuilder.new(args.name))
