
import logging
from math import gcd
from functools import reduce

import numpy as np

from .prelude import *
from . import config

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Row helpers.  A row is a 1-d numpy array of Python ints (dtype=object),
# so coefficient growth during elimination never overflows.

def _row_gcd(coeffs):
  return reduce(gcd, ( abs(int(c)) for c in coeffs ), 0)

def _floor_div(n, d):
  return n // d

def _ceil_div(n, d):
  return -((-n) // d)

def _is_constant_row(row):
  return not any( c != 0 for c in row[:-1] )

def _normalize_row(row, is_eq):
  """ divide through by the gcd of the id coefficients; an inequality's
      constant is floored, which tightens it over the integers """
  g   = _row_gcd(row[:-1])
  if g <= 1:
    return row
  if is_eq:
    if row[-1] % g != 0:
      return row
    return row // g
  out     = row // g
  out[-1] = _floor_div(row[-1], g)
  return out

class FlatAffineConstraints:
  """ A conjunction of affine equalities and inequalities over integer ids.

      Columns are laid out as [dims, symbols, locals, constant].  An
      equality row `r` means `r . [ids, 1] == 0` and an inequality row
      means `r . [ids, 1] >= 0`.  Locals are existentially quantified.
      Each non-constant column may carry the program value it stands for.
  """
  def __init__(self, num_dims=0, num_symbols=0, num_locals=0):
    precondition( is_nonneg_int(num_dims) and is_nonneg_int(num_symbols)
                                          and is_nonneg_int(num_locals),
                  "id counts must be non-negative integers" )
    self._num_dims      = num_dims
    self._num_symbols   = num_symbols
    self._num_locals    = num_locals
    self._equalities    = []
    self._inequalities  = []
    self._values        = [None] * (num_dims + num_symbols + num_locals)

  # ------------------------------------------------------------------------- #
  # shape

  @property
  def num_dims(self):       return self._num_dims
  @property
  def num_symbols(self):    return self._num_symbols
  @property
  def num_locals(self):     return self._num_locals
  @property
  def num_ids(self):
    return self._num_dims + self._num_symbols + self._num_locals

  def get_num_cols(self):
    return self.num_ids + 1

  @property
  def num_equalities(self):   return len(self._equalities)
  @property
  def num_inequalities(self): return len(self._inequalities)
  @property
  def num_constraints(self):
    return len(self._equalities) + len(self._inequalities)

  @property
  def equalities(self):
    return [ [ int(c) for c in r ] for r in self._equalities ]
  @property
  def inequalities(self):
    return [ [ int(c) for c in r ] for r in self._inequalities ]

  def get_equality(self, i):
    precondition(0 <= i < len(self._equalities),
                 f"no equality at position {i}")
    return [ int(c) for c in self._equalities[i] ]

  def get_inequality(self, i):
    precondition(0 <= i < len(self._inequalities),
                 f"no inequality at position {i}")
    return [ int(c) for c in self._inequalities[i] ]

  def _check_id(self, pos):
    precondition(is_integer(pos) and 0 <= pos < self.num_ids,
                 f"id position {pos} out of range for {self.num_ids} ids")

  def _make_row(self, row, kind):
    ncols = self.get_num_cols()
    precondition(len(row) == ncols,
                 f"{kind} row has {len(row)} entries but the system "
                 f"has {ncols} columns")
    for c in row:
      precondition(is_integer(c),
                   f"{kind} row entries must be integers, got {c!r}")
    return np.array([ int(c) for c in row ], dtype=object)

  # ------------------------------------------------------------------------- #
  # adding and removing constraints

  def add_equality(self, row):
    self._equalities.append( self._make_row(row, "equality") )

  def add_inequality(self, row):
    self._inequalities.append( self._make_row(row, "inequality") )

  def remove_equality(self, i):
    precondition(0 <= i < len(self._equalities),
                 f"no equality at position {i}")
    del self._equalities[i]

  def remove_inequality(self, i):
    precondition(0 <= i < len(self._inequalities),
                 f"no inequality at position {i}")
    del self._inequalities[i]

  def clear_constraints(self):
    self._equalities    = []
    self._inequalities  = []

  def _unit_row(self, pos, coeff, cst):
    row       = [0] * self.get_num_cols()
    row[pos]  = coeff
    row[-1]   = cst
    return row

  def add_constant_lower_bound(self, pos, lb):
    """ id[pos] >= lb """
    self._check_id(pos)
    self.add_inequality( self._unit_row(pos, 1, -lb) )

  def add_constant_upper_bound(self, pos, ub):
    """ id[pos] <= ub """
    self._check_id(pos)
    self.add_inequality( self._unit_row(pos, -1, ub) )

  def set_id_to_constant(self, pos, val):
    self._check_id(pos)
    self.add_equality( self._unit_row(pos, 1, -val) )

  def append(self, other):
    """ conjoin the constraints of a system with the same column layout """
    precondition( isinstance(other, FlatAffineConstraints) and
                  other.num_dims    == self.num_dims    and
                  other.num_symbols == self.num_symbols and
                  other.num_locals  == self.num_locals,
                  "appended system must have the same id layout" )
    self._equalities.extend(   r.copy() for r in other._equalities )
    self._inequalities.extend( r.copy() for r in other._inequalities )

  def clone(self):
    cp                = FlatAffineConstraints(self._num_dims,
                                              self._num_symbols,
                                              self._num_locals)
    cp._equalities    = [ r.copy() for r in self._equalities ]
    cp._inequalities  = [ r.copy() for r in self._inequalities ]
    cp._values        = list(self._values)
    return cp

  # ------------------------------------------------------------------------- #
  # column management

  def _insert_column(self, col, value):
    self._equalities    = [ np.insert(r, col, 0) for r in self._equalities ]
    self._inequalities  = [ np.insert(r, col, 0) for r in self._inequalities ]
    self._values.insert(col, value)

  def _delete_column(self, col):
    self._equalities    = [ np.delete(r, col) for r in self._equalities ]
    self._inequalities  = [ np.delete(r, col) for r in self._inequalities ]
    self._values.pop(col)
    if   col < self._num_dims:                      self._num_dims    -= 1
    elif col < self._num_dims + self._num_symbols:  self._num_symbols -= 1
    else:                                           self._num_locals  -= 1

  def add_dim_id(self, pos=None, value=None):
    """ insert a dim at dim position `pos` (default: after the last dim)
        and return its column """
    pos = self._num_dims if pos is None else pos
    precondition(0 <= pos <= self._num_dims, f"bad dim position {pos}")
    self._insert_column(pos, value)
    self._num_dims += 1
    return pos

  def add_symbol_id(self, pos=None, value=None):
    pos = self._num_symbols if pos is None else pos
    precondition(0 <= pos <= self._num_symbols,
                 f"bad symbol position {pos}")
    col = self._num_dims + pos
    self._insert_column(col, value)
    self._num_symbols += 1
    return col

  def add_local_id(self, pos=None):
    pos = self._num_locals if pos is None else pos
    precondition(0 <= pos <= self._num_locals, f"bad local position {pos}")
    col = self._num_dims + self._num_symbols + pos
    self._insert_column(col, None)
    self._num_locals += 1
    return col

  def remove_id(self, pos):
    """ drop column `pos` and every coefficient on it """
    self._check_id(pos)
    self._delete_column(pos)

  def add_local_floor_div(self, dividend, divisor):
    """ add a local q = dividend floordiv divisor, encoded as
          dividend - divisor*q >= 0   and
          divisor*q + divisor - 1 - dividend >= 0
        Returns the column of q. """
    precondition(is_integer(divisor) and divisor > 0,
                 f"floordiv divisor must be a positive integer, "
                 f"got {divisor}")
    row     = self._make_row(dividend, "dividend")
    col     = self.add_local_id()
    row     = np.insert(row, col, 0)
    lo      = row.copy()
    lo[col] = -divisor
    hi      = -row
    hi[col] = divisor
    hi[-1] += divisor - 1
    self._inequalities.append(lo)
    self._inequalities.append(hi)
    return col

  # ------------------------------------------------------------------------- #
  # program values bound to columns

  def set_id_value(self, pos, value):
    self._check_id(pos)
    self._values[pos] = value

  def get_id_value(self, pos):
    self._check_id(pos)
    return self._values[pos]

  def get_id_values(self):
    return list(self._values)

  def find_id(self, value):
    for i,v in enumerate(self._values):
      if v is not None and v is value:
        return i
    return None

  # ------------------------------------------------------------------------- #
  # normalization and cheap emptiness checks

  def normalize_constraints(self):
    """ gcd-normalize every row, then drop trivially true rows and
        duplicates """
    eqs, seen = [], set()
    for r in self._equalities:
      r     = _normalize_row(r, True)
      # r == 0 iff -r == 0; make the leading coefficient positive
      lead  = next(( c for c in r[:-1] if c != 0 ), 0)
      if lead < 0:
        r   = -r
      if _is_constant_row(r) and r[-1] == 0:
        continue
      key   = tuple(r)
      if key not in seen:
        seen.add(key)
        eqs.append(r)
    ineqs, seen = [], set()
    for r in self._inequalities:
      r     = _normalize_row(r, False)
      if _is_constant_row(r) and r[-1] >= 0:
        continue
      key   = tuple(r)
      if key not in seen:
        seen.add(key)
        ineqs.append(r)
    self._equalities    = eqs
    self._inequalities  = ineqs

  def has_invalid_constraint(self):
    """ is some row a false constant constraint """
    for r in self._equalities:
      if _is_constant_row(r) and r[-1] != 0:
        return True
    for r in self._inequalities:
      if _is_constant_row(r) and r[-1] < 0:
        return True
    return False

  def is_empty_by_gcd_test(self):
    """ an equality sum(a_i x_i) + c == 0 has no integer solution
        unless gcd(a_i) divides c """
    for r in self._equalities:
      g = _row_gcd(r[:-1])
      if (g == 0 and r[-1] != 0) or (g != 0 and r[-1] % g != 0):
        return True
    return False

  # ------------------------------------------------------------------------- #
  # elimination

  def _pivot_equality(self, pos):
    piv, best = None, None
    for i,r in enumerate(self._equalities):
      a = abs(r[pos])
      if a != 0 and (best is None or a < best):
        piv, best = i, a
    return piv

  def gaussian_eliminate_id(self, pos):
    """ eliminate id `pos` by substituting it out through an equality.
        Returns whether the projection is exact over the integers. """
    self._check_id(pos)
    piv     = self._pivot_equality(pos)
    precondition(piv is not None, f"no equality involves id {pos}")
    e       = self._equalities[piv]
    b       = e[pos]
    sgn, ab = (1 if b > 0 else -1), abs(b)
    def subst(r):
      a = r[pos]
      return r if a == 0 else r * ab - e * (a * sgn)
    self._equalities    = [ subst(r) for i,r in enumerate(self._equalities)
                                     if i != piv ]
    self._inequalities  = [ subst(r) for r in self._inequalities ]
    self._delete_column(pos)
    self.normalize_constraints()
    logger.debug(f"gaussian elimination of id {pos}: "
                 f"{self.num_equalities} eqs, "
                 f"{self.num_inequalities} ineqs remain")
    return ab == 1

  def fourier_motzkin_eliminate(self, pos):
    """ project id `pos` out of the system.

        Uses an equality when one involves the id; otherwise every lower
        bound is combined with every upper bound.  The result describes
        exactly the projection of the rational solutions.  Returns whether
        it is also exact over the integers, which holds when all lower or
        all upper bounds have a unit coefficient on the id.

        Raises EliminationLimitError, leaving the system untouched, when
        the step would produce more than config.MAX_FM_CONSTRAINTS rows.
    """
    self._check_id(pos)
    if self._pivot_equality(pos) is not None:
      return self.gaussian_eliminate_id(pos)

    lbs, ubs, rest = [], [], []
    for r in self._inequalities:
      if   r[pos] > 0:  lbs.append(r)
      elif r[pos] < 0:  ubs.append(r)
      else:             rest.append(r)

    n_rows = len(rest) + len(lbs) * len(ubs)
    if n_rows > config.MAX_FM_CONSTRAINTS:
      raise EliminationLimitError(
        f"eliminating id {pos} would produce {n_rows} inequalities "
        f"(limit {config.MAX_FM_CONSTRAINTS})")

    exact = ( all( abs(r[pos]) == 1 for r in lbs ) or
              all( abs(r[pos]) == 1 for r in ubs ) )
    for l in lbs:
      for u in ubs:
        rest.append( l * (-u[pos]) + u * l[pos] )
    self._inequalities = rest
    self._delete_column(pos)
    self.normalize_constraints()
    logger.debug(f"Fourier-Motzkin elimination of id {pos}: "
                 f"{len(lbs)} lower x {len(ubs)} upper bounds, "
                 f"{self.num_inequalities} ineqs remain")
    return exact

  def project_out(self, pos, num=1):
    """ eliminate ids pos .. pos+num-1; returns whether every step was
        exact over the integers.  The system is left untouched when any
        step raises. """
    precondition(0 <= pos and pos + num <= self.num_ids,
                 f"cannot project out ids [{pos},{pos+num}) "
                 f"of {self.num_ids}")
    tmp   = self.clone()
    exact = True
    for _ in range(num):
      exact = tmp.fourier_motzkin_eliminate(pos) and exact
    self._assign(tmp)
    return exact

  def _assign(self, other):
    self._num_dims      = other._num_dims
    self._num_symbols   = other._num_symbols
    self._num_locals    = other._num_locals
    self._equalities    = other._equalities
    self._inequalities  = other._inequalities
    self._values        = other._values

  def _best_elimination_candidate(self):
    # ids fixed by an equality are substituted out first, unit
    # coefficients before larger ones
    best, best_coeff = None, None
    for r in self._equalities:
      for pos in range(self.num_ids):
        a = abs(r[pos])
        if a != 0 and (best_coeff is None or a < best_coeff):
          best, best_coeff = pos, a
    if best is not None:
      return best
    best, best_cost = 0, None
    for pos in range(self.num_ids):
      nlb   = sum([ 1 for r in self._inequalities if r[pos] > 0 ])
      nub   = sum([ 1 for r in self._inequalities if r[pos] < 0 ])
      cost  = nlb * nub - nlb - nub
      if best_cost is None or cost < best_cost:
        best, best_cost = pos, cost
    return best

  def is_empty(self):
    """ True only when the system provably has no integer solution.
        False means no contradiction was found after eliminating every id
        over the rationals; use is_integer_empty for an exact answer. """
    if self.is_empty_by_gcd_test() or self.has_invalid_constraint():
      return True
    tmp = self.clone()
    tmp.normalize_constraints()
    while True:
      if tmp.is_empty_by_gcd_test() or tmp.has_invalid_constraint():
        logger.debug("constraint system is empty")
        return True
      if tmp.num_ids == 0:
        return False
      tmp.fourier_motzkin_eliminate(tmp._best_elimination_candidate())

  # ------------------------------------------------------------------------- #
  # bounds

  def _single_id_bound(self, pos, lower):
    self._check_id(pos)
    tmp = self.clone()
    if pos + 1 < tmp.num_ids:
      tmp.project_out(pos + 1, tmp.num_ids - pos - 1)
    if pos > 0:
      tmp.project_out(0, pos)
    pick  = max if lower else min
    bound = None
    def merge(b):
      nonlocal bound
      bound = b if bound is None else pick(bound, b)
    for r in tmp._equalities:
      a, c = r[0], r[-1]
      if a != 0:
        merge( _ceil_div(-c, a) if lower else _floor_div(-c, a) )
    for r in tmp._inequalities:
      a, c = r[0], r[-1]
      if   lower and a > 0:     merge( _ceil_div(-c, a) )
      elif not lower and a < 0: merge( _floor_div(-c, a) )
    return None if bound is None else int(bound)

  def get_constant_lower_bound(self, pos):
    """ tightest constant lower bound on id `pos`, or None if unbounded """
    return self._single_id_bound(pos, True)

  def get_constant_upper_bound(self, pos):
    """ tightest constant upper bound on id `pos`, or None if unbounded """
    return self._single_id_bound(pos, False)

  # ------------------------------------------------------------------------- #
  # exact integer queries and IR interop

  def is_integer_empty(self):
    from .smt import is_integer_empty
    return is_integer_empty(self)

  def find_integer_sample(self):
    from .smt import find_integer_sample
    return find_integer_sample(self)

  @classmethod
  def from_integer_set(cls, iset):
    from .flatten import flat_constraints_from_set
    return flat_constraints_from_set(iset)

  def compose_map(self, vmap):
    from .flatten import compose_map
    compose_map(self, vmap)

  # ------------------------------------------------------------------------- #
  # printing

  def _id_names(self):
    names = []
    for i,v in enumerate(self._values):
      if v is not None:
        names.append(str(v))
      elif i < self._num_dims:
        names.append(f"d{i}")
      elif i < self._num_dims + self._num_symbols:
        names.append(f"s{i - self._num_dims}")
      else:
        names.append(f"l{i - self._num_dims - self._num_symbols}")
    return names

  def __str__(self):
    w     = config.ROW_PRINT_WIDTH
    lines = [ f"Constraints ({self._num_dims} dims, "
              f"{self._num_symbols} symbols, {self._num_locals} locals), "
              f"({self.num_constraints} constraints)",
              "".join([ f"{nm:>{w}}" for nm in self._id_names() ]) +
              f"{'const':>{w+2}}" ]
    def fmt(r, rel):
      return ( "".join([ f"{int(c):>{w}}" for c in r[:-1] ]) +
               f"{int(r[-1]):>{w+2}} {rel} 0" )
    lines.extend( fmt(r, "==") for r in self._equalities )
    lines.extend( fmt(r, ">=") for r in self._inequalities )
    return "\n".join(lines)

  def dump(self):
    logger.debug(f"\n{self}")
