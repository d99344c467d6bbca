
from .adt import ADT
from .adt import memo as ADTmemo

from .prelude import *

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Immutable affine expressions, maps, integer sets and affine-apply nodes.
# Expressions, maps and sets are hash-consed: structural equality is `is`.

affine_binops = {
  "+"         : True,
  "*"         : True,
  "floordiv"  : True,
  "ceildiv"   : True,
  "mod"       : True,
}

AE = ADT("""
module AE {
  expr        = Const   ( int   val )
              | Dim     ( pos   pos )
              | Symbol  ( pos   pos )
              | BinOp   ( binop op,   expr lhs,  expr rhs )

  affine_map  = ( count num_dims,     count num_symbols,
                  expr* results,      expr* range_sizes )

  -- constraints[i] == 0 when eq_flags[i], constraints[i] >= 0 otherwise
  integer_set = ( count num_dims,     count num_symbols,
                  expr* constraints,  bool* eq_flags )

  apply_op    = ( affine_map map, value* operands, value* results )
}
""", {
  'pos':    is_nonneg_int,
  'count':  is_nonneg_int,
  'binop':  lambda x: x in affine_binops,
  'value':  lambda x: type(x) is Sym,
})
ADTmemo(AE,[
  'Const', 'Dim', 'Symbol', 'BinOp', 'affine_map', 'integer_set',
],{
  'pos':    lambda x: x,
  'count':  lambda x: x,
  'binop':  lambda x: x,
})

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Expression builders with light constant folding

def const(val):
  if not is_integer(val):
    raise TypeError(f"expected an integer constant, got {val!r}")
  return AE.Const(int(val))

def dim(pos):
  return AE.Dim(pos)

def symbol(pos):
  return AE.Symbol(pos)

def _lift(obj):
  if isinstance(obj, AE.expr):
    return obj
  elif is_integer(obj):
    return AE.Const(int(obj))
  else: raise TypeError(f"cannot use {type(obj)} as an affine expression")

def _is_const(e, val=None):
  return type(e) is AE.Const and (val is None or e.val == val)

def add(lhs, rhs):
  lhs, rhs  = _lift(lhs), _lift(rhs)
  if _is_const(lhs) and _is_const(rhs):
    return AE.Const(lhs.val + rhs.val)
  # keep constants on the right
  if _is_const(lhs):
    lhs, rhs = rhs, lhs
  if _is_const(rhs, 0):
    return lhs
  # (x + c1) + c2  ->  x + (c1 + c2)
  if ( _is_const(rhs) and type(lhs) is AE.BinOp and lhs.op == "+"
                      and _is_const(lhs.rhs) ):
    return add(lhs.lhs, lhs.rhs.val + rhs.val)
  # (x + c) + y  ->  (x + y) + c
  if ( type(lhs) is AE.BinOp and lhs.op == "+" and _is_const(lhs.rhs) ):
    return add(add(lhs.lhs, rhs), lhs.rhs)
  return AE.BinOp("+", lhs, rhs)

def mul(lhs, rhs):
  lhs, rhs  = _lift(lhs), _lift(rhs)
  if _is_const(lhs) and _is_const(rhs):
    return AE.Const(lhs.val * rhs.val)
  if _is_const(lhs):
    lhs, rhs = rhs, lhs
  if _is_const(rhs, 1):
    return lhs
  if _is_const(rhs, 0):
    return rhs
  # (x * c1) * c2  ->  x * (c1 * c2)
  if ( _is_const(rhs) and type(lhs) is AE.BinOp and lhs.op == "*"
                      and _is_const(lhs.rhs) ):
    return mul(lhs.lhs, lhs.rhs.val * rhs.val)
  return AE.BinOp("*", lhs, rhs)

def _check_divisor(rhs):
  precondition(not _is_const(rhs, 0), "division of an affine expression by 0")

def floordiv(lhs, rhs):
  lhs, rhs  = _lift(lhs), _lift(rhs)
  _check_divisor(rhs)
  if _is_const(lhs) and _is_const(rhs):
    return AE.Const(lhs.val // rhs.val)
  if _is_const(rhs, 1):
    return lhs
  return AE.BinOp("floordiv", lhs, rhs)

def ceildiv(lhs, rhs):
  lhs, rhs  = _lift(lhs), _lift(rhs)
  _check_divisor(rhs)
  if _is_const(lhs) and _is_const(rhs):
    return AE.Const(-((-lhs.val) // rhs.val))
  if _is_const(rhs, 1):
    return lhs
  return AE.BinOp("ceildiv", lhs, rhs)

def mod(lhs, rhs):
  lhs, rhs  = _lift(lhs), _lift(rhs)
  _check_divisor(rhs)
  if _is_const(lhs) and _is_const(rhs):
    return AE.Const(lhs.val % rhs.val)
  if _is_const(rhs, 1) or _is_const(rhs, -1):
    return AE.Const(0)
  return AE.BinOp("mod", lhs, rhs)

_builders = {
  "+"         : add,
  "*"         : mul,
  "floordiv"  : floordiv,
  "ceildiv"   : ceildiv,
  "mod"       : mod,
}

def binop(op, lhs, rhs):
  return _builders[op](lhs, rhs)

# --------------------------------------------------------------------------- #
# Operator overloading to help construct affine expressions

@extclass(AE.expr)
def __add__(lhs,rhs):   return add(lhs,rhs)
@extclass(AE.expr)
def __radd__(rhs,lhs):  return add(lhs,rhs)
@extclass(AE.expr)
def __neg__(arg):       return mul(arg,-1)
@extclass(AE.expr)
def __sub__(lhs,rhs):   return add(lhs, mul(rhs,-1))
@extclass(AE.expr)
def __rsub__(rhs,lhs):  return add(lhs, mul(rhs,-1))
@extclass(AE.expr)
def __mul__(lhs,rhs):   return mul(lhs,rhs)
@extclass(AE.expr)
def __rmul__(rhs,lhs):  return mul(lhs,rhs)
@extclass(AE.expr)
def __floordiv__(lhs,rhs): return floordiv(lhs,rhs)
@extclass(AE.expr)
def __mod__(lhs,rhs):   return mod(lhs,rhs)
del __add__, __radd__, __neg__, __sub__, __rsub__, __mul__, __rmul__
del __floordiv__, __mod__
AE.expr.ceildiv = lambda lhs,rhs: ceildiv(lhs,rhs)

# --------------------------------------------------------------------------- #
# Evaluation at a concrete integer point

@extclass(AE.expr)
def eval(e, dims=(), syms=()):
  eclass = type(e)
  if   eclass is AE.Const:  return e.val
  elif eclass is AE.Dim:
    precondition(e.pos < len(dims), f"no value given for d{e.pos}")
    return int(dims[e.pos])
  elif eclass is AE.Symbol:
    precondition(e.pos < len(syms), f"no value given for s{e.pos}")
    return int(syms[e.pos])
  elif eclass is AE.BinOp:
    l, r  = e.lhs.eval(dims,syms), e.rhs.eval(dims,syms)
    if   e.op == "+":         return l + r
    elif e.op == "*":         return l * r
    elif e.op == "floordiv":  return l // r
    elif e.op == "ceildiv":   return -((-l) // r)
    elif e.op == "mod":       return l % r
    else: assert False, f"unrecognized op '{e.op}'"
  else: assert False, "impossible expression case"
del eval

# --------------------------------------------------------------------------- #
# string representation

@extclass(AE.expr)
def __str__(e):
  if not hasattr(e,'_str_cached'):
    eclass = type(e)
    if   eclass is AE.Const:  s = str(e.val)
    elif eclass is AE.Dim:    s = f"d{e.pos}"
    elif eclass is AE.Symbol: s = f"s{e.pos}"
    elif eclass is AE.BinOp:
      if e.op == "+":
        rhs = e.rhs
        if _is_const(rhs) and rhs.val < 0:
          s = f"{e.lhs} - {-rhs.val}"
        elif ( type(rhs) is AE.BinOp and rhs.op == "*"
                                     and _is_const(rhs.rhs, -1) ):
          s = f"{e.lhs} - {_paren(rhs.lhs)}"
        else:
          s = f"{e.lhs} + {rhs}"
      else:
        s = f"{_paren(e.lhs)} {e.op} {_paren(e.rhs)}"
    else: assert False, "impossible expression case"
    e._str_cached = s
  return e._str_cached
del __str__

def _paren(e):
  if type(e) is AE.BinOp and e.op == "+":
    return f"({e})"
  return str(e)

def _id_list(num_dims, num_symbols):
  ds    = ", ".join([ f"d{i}" for i in range(num_dims) ])
  ss    = ", ".join([ f"s{i}" for i in range(num_symbols) ])
  return f"({ds})" + (f"[{ss}]" if num_symbols > 0 else "")

@extclass(AE.affine_map)
def __str__(m):
  res   = ", ".join([ str(r) for r in m.results ])
  s     = f"{_id_list(m.num_dims, m.num_symbols)} -> ({res})"
  if len(m.range_sizes) > 0:
    s  += " size (" + ", ".join([ str(r) for r in m.range_sizes ]) + ")"
  return s
del __str__

@extclass(AE.integer_set)
def __str__(st):
  cs    = ", ".join([ f"{c} == 0" if eq else f"{c} >= 0"
                      for c,eq in zip(st.constraints, st.eq_flags) ])
  return f"{_id_list(st.num_dims, st.num_symbols)} : ({cs})"
del __str__

@extclass(AE.apply_op)
def __str__(op):
  res   = ", ".join([ str(v) for v in op.results ])
  dops  = op.operands[:op.map.num_dims]
  sops  = op.operands[op.map.num_dims:]
  args  = "(" + ", ".join([ str(v) for v in dops ]) + ")"
  if len(sops) > 0:
    args += "[" + ", ".join([ str(v) for v in sops ]) + "]"
  return f"{res} = affine_apply {op.map} {args}"
del __str__

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Validated constructors for maps and sets

def _check_ids(e, num_dims, num_symbols):
  eclass = type(e)
  if eclass is AE.Dim:
    precondition(e.pos < num_dims,
                 f"d{e.pos} is out of range for {num_dims} dims")
  elif eclass is AE.Symbol:
    precondition(e.pos < num_symbols,
                 f"s{e.pos} is out of range for {num_symbols} symbols")
  elif eclass is AE.BinOp:
    _check_ids(e.lhs, num_dims, num_symbols)
    _check_ids(e.rhs, num_dims, num_symbols)

def check_expr_ids(e, num_dims, num_symbols):
  """ fail unless `e` only refers to the given dims and symbols """
  _check_ids(e, num_dims, num_symbols)

def get_affine_map(num_dims, num_symbols, results, range_sizes=None):
  results     = [ _lift(r) for r in results ]
  range_sizes = [ _lift(r) for r in (range_sizes or []) ]
  precondition(len(range_sizes) == 0 or len(range_sizes) == len(results),
               "range sizes must be empty or parallel to the results")
  for e in results + range_sizes:
    _check_ids(e, num_dims, num_symbols)
  return AE.affine_map(num_dims, num_symbols, results, range_sizes)

def get_integer_set(num_dims, num_symbols, constraints, eq_flags):
  constraints = [ _lift(c) for c in constraints ]
  eq_flags    = [ bool(f) for f in eq_flags ]
  precondition(len(constraints) == len(eq_flags),
               "every constraint needs exactly one equality flag")
  for e in constraints:
    _check_ids(e, num_dims, num_symbols)
  return AE.integer_set(num_dims, num_symbols, constraints, eq_flags)

@extclass(AE.affine_map)
def num_inputs(m):
  return m.num_dims + m.num_symbols
del num_inputs

@extclass(AE.integer_set)
def num_equalities(st):
  return sum([ 1 for f in st.eq_flags if f ])
del num_equalities

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

class AffineContext:
  """ Factory for affine IR objects and owner of the program-value table.

      Program values are `Sym` handles.  Analysis objects keep them as
      plain, non-owning references; only the context records which
      affine-apply node defines a value.
  """
  def __init__(self):
    self._values      = []
    self._defining_op = {}

  def dim(self, pos):       return dim(pos)
  def symbol(self, pos):    return symbol(pos)
  def const(self, val):     return const(val)

  def get_map(self, num_dims, num_symbols, results, range_sizes=None):
    return get_affine_map(num_dims, num_symbols, results, range_sizes)

  def get_set(self, num_dims, num_symbols, constraints, eq_flags):
    return get_integer_set(num_dims, num_symbols, constraints, eq_flags)

  def get_universal_set(self, num_dims, num_symbols):
    return get_integer_set(num_dims, num_symbols, [], [])

  def new_value(self, name="v"):
    v = Sym(name)
    self._values.append(v)
    return v

  def values(self):
    return list(self._values)

  def num_values(self):
    return len(self._values)

  def owns(self, value):
    return value in self._values

  def create_apply(self, amap, operands, name="r"):
    precondition(isinstance(amap, AE.affine_map), "expected an affine map")
    operands  = list(operands)
    for v in operands:
      precondition(self.owns(v), f"operand '{v}' is not a value of this "
                                 f"context")
    precondition(len(operands) == amap.num_dims + amap.num_symbols,
                 f"affine_apply of {amap} expects "
                 f"{amap.num_dims + amap.num_symbols} operands, "
                 f"got {len(operands)}")
    results   = [ self.new_value(name) for _ in amap.results ]
    op        = AE.apply_op(amap, operands, results)
    for r in results:
      self._defining_op[r] = op
    return op

  def get_defining_op(self, value):
    return self._defining_op.get(value)
