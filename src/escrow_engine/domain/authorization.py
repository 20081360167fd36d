"""Capability checks against the identities stored on an escrow.

Authorization is plain equality between the caller and the identity recorded
for the role an operation requires. There is no dynamic dispatch and no
role hierarchy: holding one role grants nothing about another.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_engine.domain.enums import Role, RolePolicy
from escrow_engine.domain.exceptions import InvalidPartiesError, UnauthorizedError
from escrow_engine.domain.models import VAULT_PREFIX

if TYPE_CHECKING:
    from escrow_engine.domain.models import Escrow


def require_role(escrow: Escrow, caller: str, role: Role, action: str) -> None:
    """Raise UnauthorizedError unless ``caller`` holds ``role`` on ``escrow``."""
    if caller != escrow.holder_of(role):
        raise UnauthorizedError(caller=caller, required_role=role.value, action=action)


def validate_parties(
    policy: RolePolicy,
    initializer: str,
    recipient: str,
    arbiter: str,
) -> None:
    """Check party identities against the configured role policy.

    Empty identities and identities in the vault namespace are rejected under
    every policy, since parties double as ledger custody handles.

    Raises:
        InvalidPartiesError: If the policy forbids this combination.
    """
    for role, identity in (
        (Role.INITIALIZER, initializer),
        (Role.RECIPIENT, recipient),
        (Role.ARBITER, arbiter),
    ):
        if not identity:
            raise InvalidPartiesError(f"The {role.value} identity must not be empty")
        if identity.startswith(VAULT_PREFIX):
            raise InvalidPartiesError(
                f"The {role.value} identity must not use the reserved '{VAULT_PREFIX}' prefix"
            )

    if policy is RolePolicy.UNRESTRICTED:
        return

    if initializer == recipient:
        raise InvalidPartiesError("The recipient must differ from the initializer")

    if policy is RolePolicy.ALL_DISTINCT and arbiter in (initializer, recipient):
        raise InvalidPartiesError(
            "The arbiter must differ from both the initializer and the recipient"
        )
