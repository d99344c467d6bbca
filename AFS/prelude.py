
from re import compile as _re_compile
import numpy as _np

def is_nonneg_int(obj):
  return type(obj) is int and obj >= 0

def is_integer(obj):
  return isinstance(obj, (int, _np.integer)) and type(obj) is not bool

_valid_pattern = _re_compile(r"^[a-zA-Z_]\w*$")
def is_valid_name(obj):
  return (type(obj) is str) and (_valid_pattern.match(obj) != None)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Errors

class PreconditionError(AssertionError):
  """ A caller violated the contract of an operation.
      These are bugs, not data conditions, and abort the current query. """
  pass

class SemiAffineError(NotImplementedError):
  """ The expression is outside the flat linear fragment """
  pass

class EliminationLimitError(RuntimeError):
  pass

def precondition(cond, msg):
  if not cond:
    raise PreconditionError(msg)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

class Sym:
  _unq_count   = 1

  def __init__(self,nm):
    if not is_valid_name(nm):
      raise TypeError(f"expected an alphanumeric name string, "
                      f"but got '{nm}'")
    self._nm    = nm
    self._id    = Sym._unq_count
    Sym._unq_count += 1

  def __str__(self):
    return self._nm

  def __repr__(self):
    return f"{self._nm}${self._id}"

  def __hash__(self): return id(self)

  def __lt__(lhs,rhs): return (lhs._nm,lhs._id) < (rhs._nm,rhs._id)

  def name(self):
    return self._nm

  def uid(self):
    return self._id

# from a github gist by victorlei
def extclass(cls):
  return lambda f: (setattr(cls,f.__name__,f) or f)
