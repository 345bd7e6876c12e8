"""
Transaction composition.

- args: typed literals, object inputs, gas coin and output references
- batch: Operation / Batch descriptors, compose_batch() and BatchComposer
"""

from .args import U64, U16, Str, Address, Id, ObjectArg, GasCoin, GAS, Ref, Argument
from .batch import (
    MOVE_CALL,
    SPLIT_COINS,
    TRANSFER_OBJECTS,
    Operation,
    Batch,
    BatchComposer,
    compose_batch,
)

__all__ = [
    "U64",
    "U16",
    "Str",
    "Address",
    "Id",
    "ObjectArg",
    "GasCoin",
    "GAS",
    "Ref",
    "Argument",
    "MOVE_CALL",
    "SPLIT_COINS",
    "TRANSFER_OBJECTS",
    "Operation",
    "Batch",
    "BatchComposer",
    "compose_batch",
]
