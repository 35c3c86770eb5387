"""
jobscaler/cluster/ownership.py
──────────────────────────────
Controller owner references.

A Job points back at its ScaledJob through ``metadata.ownerReferences`` so
the remote garbage collector deletes the Jobs when the ScaledJob goes away.
The reference is identifier data (apiVersion/kind/name/uid); nothing here
holds or resolves a live object.

Rules enforced (same as a Kubernetes controller would)
───────────────────────────────────────────────────────
  1. The owner must have a uid — references are by uid, not by name.
  2. Owner and child must share a namespace. Cross-namespace owner
     references are invalid and get the child garbage-collected.
  3. At most one controller per object: if the child already has a
     controller reference to a *different* owner, refuse.
  4. An existing reference to the same owner is replaced, not duplicated.
"""

from __future__ import annotations

from jobscaler.shared.models import JobInstance, OwnerReference, ScaleTarget


class OwnerReferenceError(Exception):
    """
    Raised when a controller reference cannot be attached.

    Attributes:
        reason: Human-readable explanation.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def owner_reference_for(owner: ScaleTarget) -> OwnerReference:
    """Build a controlling, deletion-blocking reference to ``owner``."""
    if not owner.metadata.uid:
        raise OwnerReferenceError(
            f"{owner.kind} {owner.name!r} has no uid; it must be read from the "
            f"cluster before it can own objects."
        )
    return OwnerReference(
        api_version=owner.api_version,
        kind=owner.kind,
        name=owner.name,
        uid=owner.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )


def _same_group(a: str, b: str) -> bool:
    return a.split("/")[0] == b.split("/")[0]


def set_controller_reference(owner: ScaleTarget, child: JobInstance) -> None:
    """
    Attach ``owner`` as the controller of ``child`` (mutates child.metadata).

    Raises:
        OwnerReferenceError: missing uid, namespace mismatch, or child
                             already controlled by someone else.
    """
    reference = owner_reference_for(owner)

    child_namespace = child.metadata.namespace or ""
    if owner.namespace and child_namespace and owner.namespace != child_namespace:
        raise OwnerReferenceError(
            f"cross-namespace owner references are disallowed: owner "
            f"{owner.namespace}/{owner.name}, child namespace {child_namespace}"
        )

    existing = child.metadata.owner_references
    for ref in existing:
        if ref.controller and ref.uid != reference.uid:
            raise OwnerReferenceError(
                f"Object {child_namespace}/{child.metadata.name or child.metadata.generate_name} "
                f"is already owned by another {ref.kind} controller {ref.name}"
            )

    # Replace a reference to the same object rather than appending a duplicate.
    kept = [
        ref for ref in existing
        if not (ref.kind == reference.kind
                and ref.name == reference.name
                and _same_group(ref.api_version, reference.api_version))
    ]
    kept.append(reference)
    child.metadata.owner_references = kept
