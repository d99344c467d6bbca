""" Structural queries over affine expressions.

    These never consult a constraint system: they only look at the shape of
    the expression tree and its constants.  A negative answer from
    `is_multiple_of` therefore means "not proven here", never "disproven".
"""

from math import gcd

from .prelude import *
from .affine_ir import AE

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

@extclass(AE.expr)
def is_constant(e):
  return type(e) is AE.Const
del is_constant

@extclass(AE.expr)
def is_dim(e):
  return type(e) is AE.Dim
del is_dim

@extclass(AE.expr)
def is_symbol(e):
  return type(e) is AE.Symbol
del is_symbol

@extclass(AE.expr)
def is_symbolic_or_constant(e):
  eclass = type(e)
  if   eclass is AE.Const or eclass is AE.Symbol: return True
  elif eclass is AE.Dim:                          return False
  else: return e.lhs.is_symbolic_or_constant() and \
               e.rhs.is_symbolic_or_constant()
del is_symbolic_or_constant

@extclass(AE.expr)
def is_pure_affine(e):
  """ True when `e` only multiplies and divides by constants """
  if type(e) is not AE.BinOp:
    return True
  if e.op == "+":
    return e.lhs.is_pure_affine() and e.rhs.is_pure_affine()
  elif e.op == "*":
    return ( e.lhs.is_pure_affine() and e.rhs.is_pure_affine() and
             (e.lhs.is_constant() or e.rhs.is_constant()) )
  else:
    return e.lhs.is_pure_affine() and e.rhs.is_constant()
del is_pure_affine

@extclass(AE.expr)
def walk(e):
  """ pre-order traversal of the expression tree """
  yield e
  if type(e) is AE.BinOp:
    yield from e.lhs.walk()
    yield from e.rhs.walk()
del walk

@extclass(AE.expr)
def uses_dim(e, pos):
  return any( type(s) is AE.Dim and s.pos == pos for s in e.walk() )
del uses_dim

@extclass(AE.expr)
def uses_symbol(e, pos):
  return any( type(s) is AE.Symbol and s.pos == pos for s in e.walk() )
del uses_symbol

# --------------------------------------------------------------------------- #
# Divisibility

@extclass(AE.expr)
def largest_known_divisor(e):
  """ The largest integer known to divide `e` for every assignment of its
      dims and symbols.  The constant 0 reports 0, which every factor
      divides. """
  eclass = type(e)
  if   eclass is AE.Const:
    return abs(e.val)
  elif eclass is AE.Dim or eclass is AE.Symbol:
    return 1
  elif eclass is AE.BinOp:
    ldiv  = e.lhs.largest_known_divisor()
    if e.op == "+" or e.op == "mod":
      # a mod b == a - b*floor(a/b)
      return gcd(ldiv, e.rhs.largest_known_divisor())
    elif e.op == "*":
      return ldiv * e.rhs.largest_known_divisor()
    elif e.op == "floordiv" or e.op == "ceildiv":
      if e.rhs.is_constant() and e.rhs.val != 0 and ldiv % e.rhs.val == 0:
        return abs(ldiv // e.rhs.val)
      return 1
    else: assert False, f"unrecognized op '{e.op}'"
  else: assert False, "impossible expression case"
del largest_known_divisor

@extclass(AE.expr)
def is_multiple_of(e, factor):
  precondition(is_integer(factor) and factor != 0,
               f"expected a nonzero integer factor, got {factor}")
  return e.largest_known_divisor() % int(factor) == 0
del is_multiple_of
