
import logging

from pysmt import shortcuts as SMT

from .prelude import *
from . import config

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Exact integer feasibility of flat constraint systems via an SMT solver

def _get_smt_solver():
  slvs    = SMT.get_env().factory.all_solvers()
  if len(slvs) == 0: raise OSError("Could not find any SMT solvers")
  return SMT.Solver(name=next(iter(slvs)))

def has_smt_solver():
  return len(SMT.get_env().factory.all_solvers()) > 0

def _id_symbols(cst):
  pre     = config.SMT_SYMBOL_PREFIX
  syms    = []
  for i in range(cst.num_ids):
    if   i < cst.num_dims:
      nm  = f"{pre}d{i}"
    elif i < cst.num_dims + cst.num_symbols:
      nm  = f"{pre}s{i - cst.num_dims}"
    else:
      nm  = f"{pre}l{i - cst.num_dims - cst.num_symbols}"
    syms.append( SMT.Symbol(nm, SMT.INT) )
  return syms

def _affine(row, syms):
  f       = SMT.Int(int(row[-1]))
  for c,sym in zip(row[:-1], syms):
    if c != 0:
      f   = SMT.Plus( f, SMT.Times( SMT.Int(int(c)), sym ) )
  return f

def formula(cst, syms=None):
  """ the conjunction of all rows of `cst` as an SMT formula """
  syms    = _id_symbols(cst) if syms is None else syms
  zero    = SMT.Int(0)
  preds   = [ SMT.Equals( _affine(r, syms), zero ) for r in cst.equalities ]
  preds  += [ SMT.GE( _affine(r, syms), zero ) for r in cst.inequalities ]
  return SMT.And(preds)

def is_integer_empty(cst):
  with _get_smt_solver() as slv:
    empty = not slv.is_sat( formula(cst) )
  logger.debug(f"SMT integer emptiness: {empty}")
  return empty

def find_integer_sample(cst):
  """ an integer point satisfying every row of `cst` (values for all ids,
      locals included), or None when there is none """
  syms    = _id_symbols(cst)
  with _get_smt_solver() as slv:
    slv.add_assertion( formula(cst, syms) )
    if not slv.solve():
      return None
    if len(syms) == 0:
      return []
    vals  = slv.get_py_values(syms)
  return [ int(vals[s]) for s in syms ]
