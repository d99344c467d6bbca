""" AFS - Affine Structures for polyhedral analysis """

from .prelude import (
  Sym,
  PreconditionError,
  SemiAffineError,
  EliminationLimitError,
)

from .affine_ir import (
  AE,
  AffineContext,
  const,
  dim,
  symbol,
  get_affine_map,
  get_integer_set,
)
from . import affine_expr

from .proof import yes, no, unknown

from .flat_constraints import FlatAffineConstraints
from .flatten import AffineExprFlattener, get_flattened_affine_exprs

from .affine_structures import (
  MutableAffineMap,
  MutableIntegerSet,
  AffineConstraint,
  AffineValueMap,
)

__all__ = [
  "Sym",
  "PreconditionError",
  "SemiAffineError",
  "EliminationLimitError",
  #
  "AE",
  "AffineContext",
  "const",
  "dim",
  "symbol",
  "get_affine_map",
  "get_integer_set",
  #
  "yes",
  "no",
  "unknown",
  #
  "FlatAffineConstraints",
  "AffineExprFlattener",
  "get_flattened_affine_exprs",
  #
  "MutableAffineMap",
  "MutableIntegerSet",
  "AffineConstraint",
  "AffineValueMap",
]
