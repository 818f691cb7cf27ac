"""Witness input preparation.

The relation takes positions and lengths it cannot find on its own. This
package computes them from a concrete token; the relation re-checks every
one of them.
"""

from .jwt_inputs import (
    ClaimExcerpt,
    ZkLoginInputs,
    b64_span,
    compute_address_seed,
    compute_nonce,
    locate_claim,
    modulus_to_field,
    prepare_inputs,
)

__all__ = [
    "ClaimExcerpt",
    "ZkLoginInputs",
    "b64_span",
    "compute_address_seed",
    "compute_nonce",
    "locate_claim",
    "modulus_to_field",
    "prepare_inputs",
]
