"""Field-level mutation rules for builder and cluster builder specs.

These helpers touch only tag, stack reference, store reference, service
account and order. Status and every other spec field are left alone so a
diff against the observed object carries nothing else.
"""

from typing import Any, Dict, List, Optional

STACK_KIND = "ClusterStack"
STORE_KIND = "ClusterStore"


def _set_reference(spec: Dict[str, Any], field: str, kind: str, name: str) -> None:
    reference = spec.get(field) or {"kind": kind}
    reference["name"] = name
    spec[field] = reference


def update_builder_spec(spec: Dict[str, Any], *, tag: Optional[str] = None,
                        stack: Optional[str] = None, store: Optional[str] = None,
                        order: Optional[List[dict]] = None,
                        service_account: Optional[str] = None,
                        service_account_name: Optional[str] = None,
                        service_account_namespace: Optional[str] = None) -> None:
    """Applies the non-empty values to spec in place.

    service_account is the namespaced builder's field; the two
    service_account_* values fill a cluster builder's serviceAccountRef.
    """
    if tag:
        spec["tag"] = tag
    if stack:
        _set_reference(spec, "stack", STACK_KIND, stack)
    if store:
        _set_reference(spec, "store", STORE_KIND, store)
    if service_account:
        spec["serviceAccount"] = service_account
    if service_account_name or service_account_namespace:
        reference = spec.get("serviceAccountRef") or {}
        if service_account_name:
            reference["name"] = service_account_name
        if service_account_namespace:
            reference["namespace"] = service_account_namespace
        spec["serviceAccountRef"] = reference
    if order is not None:
        spec["order"] = order


def new_builder_spec(tag: str, stack: str, store: str, order: List[dict]) -> Dict[str, Any]:
    spec: Dict[str, Any] = {}
    update_builder_spec(spec, tag=tag, stack=stack, store=store, order=order)
    return spec
