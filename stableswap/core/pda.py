# stableswap/core/pda.py

import hashlib
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .exceptions import InvalidSeeds, NoValidNonce

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32
MAX_NONCE = 255

Seed = Union[bytes, Pubkey]


@dataclass(frozen=True)
class ProgramDerivedAddress:
    """
    An address owned by a program with no private key behind it.

    Used as the pool authority: the program signs for it by re-deriving the address
    from the stored nonce. It has no signing interface, and the transaction
    submitter refuses it as a signer.
    """
    pubkey: Pubkey
    nonce: int
    program_id: Pubkey
    seeds: Tuple[bytes, ...]

    def verify(self) -> bool:
        """True when seeds + stored nonce + program id reproduce this address."""
        try:
            return create_program_address([*self.seeds, bytes([self.nonce])], self.program_id) == self.pubkey
        except InvalidSeeds:
            return False

    def __bytes__(self) -> bytes:
        return bytes(self.pubkey)

    def __str__(self) -> str:
        return str(self.pubkey)


def _seed_bytes(seeds: Sequence[Seed]) -> Tuple[bytes, ...]:
    return tuple(bytes(seed) for seed in seeds)


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds are allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ValueError(f"Seed longer than {MAX_SEED_LEN} bytes: {len(seed)}")


def create_program_address(seeds: Sequence[Seed], program_id: Pubkey) -> Pubkey:
    """
    Hashes seeds (nonce included), program id and the PDA marker.
    Raises InvalidSeeds when the digest is a valid ed25519 point.
    """
    raw_seeds = _seed_bytes(seeds)
    _check_seeds(raw_seeds)

    hasher = hashlib.sha256()
    for seed in raw_seeds:
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    candidate = Pubkey.from_bytes(hasher.digest())

    if candidate.is_on_curve():
        raise InvalidSeeds(f"Seeds produce an on-curve address for program {program_id}")
    return candidate


def derive_program_address(seeds: Sequence[Seed], program_id: Pubkey) -> ProgramDerivedAddress:
    """
    Finds the smallest nonce for which seeds + nonce give an off-curve address.
    Deterministic for a given (seeds, program_id).
    """
    raw_seeds = _seed_bytes(seeds)
    _check_seeds([*raw_seeds, b"\x00"])

    for nonce in range(0, MAX_NONCE + 1):
        try:
            address = create_program_address([*raw_seeds, bytes([nonce])], program_id)
        except InvalidSeeds:
            continue
        return ProgramDerivedAddress(pubkey=address, nonce=nonce, program_id=program_id, seeds=raw_seeds)

    raise NoValidNonce(f"No nonce in 0..{MAX_NONCE} yields a program address for {program_id}")


def as_pubkey(address: Union[Pubkey, ProgramDerivedAddress]) -> Pubkey:
    """Accepts either address variant where only the public key is needed."""
    if isinstance(address, ProgramDerivedAddress):
        return address.pubkey
    return address
