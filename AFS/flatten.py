
import logging

from .prelude import *
from .affine_ir import AE
from .flat_constraints import FlatAffineConstraints

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Flattening of affine expressions into constraint rows.
#
# Intermediate results are linear forms `(terms, const)` where `terms` maps a
# column of the system under construction to its coefficient.  Locals are
# only ever appended, so the columns of earlier forms stay valid.

def _lin_add(l, r):
  terms = dict(l[0])
  for col,c in r[0].items():
    terms[col] = terms.get(col, 0) + c
  return ({ col: c for col,c in terms.items() if c != 0 }, l[1] + r[1])

def _lin_scale(l, k):
  if k == 0:
    return ({}, 0)
  return ({ col: c * k for col,c in l[0].items() }, l[1] * k)

class AffineExprFlattener:
  """ Flattens expressions over `num_dims` dims and `num_symbols` symbols.

      Every `floordiv`, `ceildiv` and `mod` by a constant introduces a local
      id, whose defining inequalities are collected in `constraints()`.
      Equal divisions share a local.  Semi-affine expressions raise
      SemiAffineError.
  """
  def __init__(self, num_dims, num_symbols):
    self._num_dims    = num_dims
    self._num_symbols = num_symbols
    self._cst         = FlatAffineConstraints(num_dims, num_symbols)
    self._divs        = {}

  def constraints(self):
    return self._cst

  def flatten(self, e):
    """ flatten `e` into a linear form; see `to_row` """
    return self.visit(e)

  def to_row(self, form):
    """ the row of a linear form at the current width of the system """
    row     = [0] * self._cst.get_num_cols()
    for col,c in form[0].items():
      row[col] = c
    row[-1] = form[1]
    return row

  def visit(self, e):
    eclass  = type(e)
    if   eclass is AE.Const:
      return ({}, e.val)
    elif eclass is AE.Dim:
      precondition(e.pos < self._num_dims, f"d{e.pos} is out of range")
      return ({ e.pos: 1 }, 0)
    elif eclass is AE.Symbol:
      precondition(e.pos < self._num_symbols, f"s{e.pos} is out of range")
      return ({ self._num_dims + e.pos: 1 }, 0)
    elif eclass is AE.BinOp:
      lhs     = self.visit(e.lhs)
      rhs     = self.visit(e.rhs)
      if e.op == "+":
        return _lin_add(lhs, rhs)
      elif e.op == "*":
        if   len(rhs[0]) == 0:  return _lin_scale(lhs, rhs[1])
        elif len(lhs[0]) == 0:  return _lin_scale(rhs, lhs[1])
        raise SemiAffineError(f"cannot flatten product '{e}'")

      if len(rhs[0]) != 0:
        raise SemiAffineError(f"cannot flatten division by a "
                              f"non-constant in '{e}'")
      c       = rhs[1]
      precondition(c != 0, f"division by zero in '{e}'")
      if e.op == "floordiv":
        return self.floordiv(lhs, c)
      elif e.op == "ceildiv":
        return _lin_scale(self.floordiv(_lin_scale(lhs, -1), c), -1)
      elif e.op == "mod":
        # a mod c == a - c * (a floordiv c)
        return _lin_add(lhs, _lin_scale(self.floordiv(lhs, c), -c))
      else: assert False, f"unrecognized op '{e.op}'"
    else: assert False, "impossible expression case"

  def floordiv(self, form, c):
    if c < 0:
      form, c = _lin_scale(form, -1), -c
    if c == 1:
      return form
    # exact division needs no local
    if form[1] % c == 0 and all( v % c == 0 for v in form[0].values() ):
      return ({ col: v // c for col,v in form[0].items() }, form[1] // c)
    key     = (tuple(sorted(form[0].items())), form[1], c)
    col     = self._divs.get(key)
    if col is None:
      col   = self._cst.add_local_floor_div(self.to_row(form), c)
      self._divs[key] = col
    return ({ col: 1 }, 0)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

def get_flattened_affine_exprs(exprs, num_dims, num_symbols):
  """ Flatten a list of expressions over a shared set of locals.

      Returns `(rows, cst)`: one row per expression, every row as wide as
      `cst`, where `cst` holds only the constraints defining the locals.
  """
  fl      = AffineExprFlattener(num_dims, num_symbols)
  forms   = [ fl.flatten(e) for e in exprs ]
  rows    = [ fl.to_row(f) for f in forms ]
  return rows, fl.constraints()

def flat_constraints_from_set(iset):
  """ the flat system of an integer set; raises SemiAffineError on
      semi-affine constraints """
  precondition(isinstance(iset, AE.integer_set), "expected an integer set")
  rows, cst = get_flattened_affine_exprs(iset.constraints,
                                         iset.num_dims, iset.num_symbols)
  for row,is_eq in zip(rows, iset.eq_flags):
    if is_eq: cst.add_equality(row)
    else:     cst.add_inequality(row)
  return cst

def compose_map(cst, vmap):
  """ Compose the affine value map `vmap` into the system `cst`.

      Each result of `vmap` becomes a new leading dim bound to its result
      value, related to the map's operands by one equality.  Operands are
      matched to existing columns by value, or added as new dims/symbols;
      the locals of the flattened results are appended.
  """
  amap        = vmap.map
  precondition(amap is not None, "use of a destroyed AffineValueMap")
  nd, ns      = amap.num_dims, amap.num_symbols
  rows, lcst  = get_flattened_affine_exprs(amap.results, nd, ns)

  # result dims go first
  for i,v in enumerate(vmap.results):
    cst.add_dim_id(i, value=v)

  # every map input needs a column in `cst`
  for i,v in enumerate(vmap.operands):
    if cst.find_id(v) is None:
      if i < nd:  cst.add_dim_id(value=v)
      else:       cst.add_symbol_id(value=v)
  # positions shift as later ids are inserted; resolve them by value
  def input_col(i):
    return cst.find_id(vmap.operands[i])

  first_local = cst.num_locals
  for _ in range(lcst.num_locals):
    cst.add_local_id()
  def col_of(j):
    if j < nd + ns:
      return input_col(j)
    return cst.num_dims + cst.num_symbols + first_local + (j - nd - ns)

  ncols       = cst.get_num_cols()
  def translate(src):
    row       = [0] * ncols
    for j,c in enumerate(src[:-1]):
      if c != 0:
        row[col_of(j)] += c
    row[-1]   = src[-1]
    return row

  for r in lcst.inequalities:
    cst.add_inequality( translate(r) )
  for r in lcst.equalities:
    cst.add_equality( translate(r) )
  for i,r in enumerate(rows):
    eq        = [ -c for c in translate(r) ]
    eq[i]    += 1
    cst.add_equality(eq)
  logger.debug(f"composed {amap} into a system of "
               f"{cst.num_constraints} constraints")
