
import logging
from collections import namedtuple

from .prelude import *
from .affine_ir import AE, check_expr_ids, get_affine_map, get_integer_set
from . import affine_expr
from .flat_constraints import FlatAffineConstraints
from .flatten import AffineExprFlattener, flat_constraints_from_set, \
                     compose_map
from .proof import yes, no, unknown, from_bool

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

def _remainder_system(expr, num_dims, num_symbols, factor, nonzero):
  """ the points with expr == factor*q + r, where 1 <= r <= factor-1 when
      `nonzero` and r == 0 otherwise """
  fl      = AffineExprFlattener(num_dims, num_symbols)
  form    = fl.flatten(expr)
  cst     = fl.constraints()
  q       = cst.add_local_id()
  r       = cst.add_local_id() if nonzero else None
  row     = fl.to_row(form)
  row[q]  = -factor
  if nonzero:
    row[r] = -1
  cst.add_equality(row)
  if nonzero:
    cst.add_constant_lower_bound(r, 1)
    cst.add_constant_upper_bound(r, factor - 1)
  return cst

def _decide_multiple_with_constraints(expr, num_dims, num_symbols, factor):
  """ `yes` when no integer point leaves a nonzero remainder, `no` when no
      integer point leaves a zero remainder, `unknown` otherwise """
  factor  = abs(factor)
  try:
    if _remainder_system(expr, num_dims, num_symbols,
                         factor, True).is_empty():
      ans = yes
    elif _remainder_system(expr, num_dims, num_symbols,
                           factor, False).is_empty():
      ans = no
    else:
      ans = unknown
  except SemiAffineError:
    return unknown
  except EliminationLimitError as err:
    logger.debug(f"multiplicity of '{expr}' by {factor} left open: {err}")
    return unknown
  logger.debug(f"constraint-based multiplicity of '{expr}' by {factor}: "
               f"{ans}")
  return ans

class MutableAffineMap:
  """ A copy of an affine map whose results may be replaced in place.
      Publish the result with `get_affine_map`. """
  def __init__(self, amap, context):
    precondition(isinstance(amap, AE.affine_map), "expected an affine map")
    self._num_dims    = amap.num_dims
    self._num_symbols = amap.num_symbols
    self._results     = list(amap.results)
    self._range_sizes = list(amap.range_sizes)
    self.context      = context

  @property
  def num_dims(self):     return self._num_dims
  @property
  def num_symbols(self):  return self._num_symbols
  @property
  def num_results(self):  return len(self._results)
  @property
  def results(self):      return tuple(self._results)
  @property
  def range_sizes(self):  return tuple(self._range_sizes)

  def _check_result(self, idx):
    precondition(is_integer(idx) and 0 <= idx < len(self._results),
                 f"result index {idx} out of range for "
                 f"{len(self._results)} results")

  def get_result(self, idx):
    self._check_result(idx)
    return self._results[idx]

  def set_result(self, idx, expr):
    self._check_result(idx)
    precondition(isinstance(expr, AE.expr), "expected an affine expression")
    check_expr_ids(expr, self._num_dims, self._num_symbols)
    self._results[idx] = expr

  def is_multiple_of(self, idx, factor):
    """ `yes` when result `idx` is proven to be a multiple of `factor`
        for every point, `no` when it is proven not to be, `unknown`
        otherwise """
    self._check_result(idx)
    expr    = self._results[idx]
    proven  = expr.is_multiple_of(factor)
    if proven or expr.is_constant():
      return from_bool(proven)
    return _decide_multiple_with_constraints(expr, self._num_dims,
                                             self._num_symbols, int(factor))

  def get_affine_map(self):
    return get_affine_map(self._num_dims, self._num_symbols,
                          self._results, self._range_sizes)

  def __str__(self):
    return str(self.get_affine_map())

# --------------------------------------------------------------------------- #

# `expr == 0` when is_eq, `expr >= 0` otherwise
AffineConstraint = namedtuple('AffineConstraint', ['expr', 'is_eq'])

class MutableIntegerSet:
  def __init__(self, iset, context):
    precondition(isinstance(iset, AE.integer_set), "expected an integer set")
    self._num_dims    = iset.num_dims
    self._num_symbols = iset.num_symbols
    self.constraints  = [ AffineConstraint(c, eq)
                          for c,eq in zip(iset.constraints, iset.eq_flags) ]
    self.context      = context

  @classmethod
  def universal(cls, num_dims, num_symbols, context):
    """ the set of all points over `num_dims` dims and `num_symbols`
        symbols """
    return cls( get_integer_set(num_dims, num_symbols, [], []), context )

  @property
  def num_dims(self):         return self._num_dims
  @property
  def num_symbols(self):      return self._num_symbols
  @property
  def num_constraints(self):  return len(self.constraints)
  @property
  def num_equalities(self):
    return sum([ 1 for c in self.constraints if c.is_eq ])
  @property
  def num_inequalities(self):
    return sum([ 1 for c in self.constraints if not c.is_eq ])

  def is_universal(self):
    return len(self.constraints) == 0

  def contains(self, point):
    """ does the integer point (dims then symbols) satisfy every
        constraint """
    precondition(len(point) == self._num_dims + self._num_symbols,
                 f"expected a point with "
                 f"{self._num_dims + self._num_symbols} coordinates")
    dims, syms = point[:self._num_dims], point[self._num_dims:]
    for c in self.constraints:
      v = c.expr.eval(dims, syms)
      if (c.is_eq and v != 0) or (not c.is_eq and v < 0):
        return False
    return True

  def get_integer_set(self):
    return get_integer_set(self._num_dims, self._num_symbols,
                           [ c.expr for c in self.constraints ],
                           [ c.is_eq for c in self.constraints ])

  def to_flat_constraints(self):
    return flat_constraints_from_set( self.get_integer_set() )

# --------------------------------------------------------------------------- #

class AffineValueMap:
  """ An affine map together with the program values bound to its inputs
      and produced by its results.  The values are borrowed handles owned
      by the context; the value map never releases them. """
  def __init__(self, op, context):
    precondition(isinstance(op, AE.apply_op), "expected an affine_apply")
    self.map        = MutableAffineMap(op.map, context)
    precondition(len(op.operands) == self.map.num_dims + self.map.num_symbols,
                 f"{len(op.operands)} operands bound to a map with "
                 f"{self.map.num_dims} dims and "
                 f"{self.map.num_symbols} symbols")
    precondition(len(op.results) == self.map.num_results,
                 f"{len(op.results)} result values for "
                 f"{self.map.num_results} map results")
    self._operands  = list(op.operands)
    self._results   = list(op.results)

  def _check_live(self):
    precondition(self.map is not None, "use of a destroyed AffineValueMap")

  @property
  def num_operands(self):
    self._check_live()
    return len(self._operands)
  @property
  def operands(self):
    self._check_live()
    return tuple(self._operands)
  @property
  def num_results(self):
    self._check_live()
    return len(self._results)
  @property
  def results(self):
    self._check_live()
    return tuple(self._results)

  def get_operand(self, i):
    self._check_live()
    precondition(0 <= i < len(self._operands), f"no operand {i}")
    return self._operands[i]

  def get_result(self, i):
    self._check_live()
    precondition(0 <= i < len(self._results), f"no result {i}")
    return self._results[i]

  def is_multiple_of(self, idx, factor):
    self._check_live()
    return self.map.is_multiple_of(idx, factor)

  def is_function_of(self, idx, value):
    """ does result `idx` depend on the operand `value` """
    self._check_live()
    expr  = self.map.get_result(idx)
    nd    = self.map.num_dims
    for i,v in enumerate(self._operands):
      if v is value:
        if i < nd and expr.uses_dim(i):           return True
        if i >= nd and expr.uses_symbol(i - nd):  return True
    return False

  def to_flat_constraints(self):
    self._check_live()
    cst = FlatAffineConstraints()
    compose_map(cst, self)
    return cst

  def destroy(self):
    """ drop this object's own storage; the bound values are untouched """
    self.map        = None
    self._operands  = []
    self._results   = []
