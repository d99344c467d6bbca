import unittest
import numpy as np
from AFS.affine_ir import *
from AFS.prelude import PreconditionError, Sym

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

d0, d1  = dim(0), dim(1)
s0      = symbol(0)

class TestAffineExpr(unittest.TestCase):

  def test_uniquing(self):
    self.assertIs(dim(0), d0)
    self.assertIs(d0 + s0, d0 + s0)
    self.assertIsNot(dim(0), symbol(0))
    self.assertIs(const(3), AE.Const(3))

  def test_folding(self):
    self.assertIs(d0 + 0, d0)
    self.assertIs(0 + d0, d0)
    self.assertIs(d0 * 1, d0)
    self.assertIs(d0 * 0, const(0))
    self.assertIs(const(3) + 4, const(7))
    self.assertIs((d0 + 2) + 3, d0 + 5)
    self.assertIs((d0 * 2) * 3, d0 * 6)
    self.assertIs(4 * d0, d0 * 4)
    self.assertIs(d0 // 1, d0)
    self.assertIs(d0 % 1, const(0))
    self.assertIs(floordiv(7, 2), const(3))
    self.assertIs(ceildiv(7, 2), const(4))
    self.assertIs(mod(-7, 3), const(2))
    self.assertIs(binop("+", d0, 0), d0)

  def test_division_by_zero(self):
    with self.assertRaises(PreconditionError):
      d0 // 0
    with self.assertRaises(PreconditionError):
      d0 % const(0)
    with self.assertRaises(PreconditionError):
      d0.ceildiv(0)

  def test_bad_operands(self):
    with self.assertRaises(TypeError):
      d0 + 1.5
    with self.assertRaises(TypeError):
      AE.Dim(-1)
    with self.assertRaises(TypeError):
      AE.BinOp("-", d0, d1)

  def test_const_operand(self):
    self.assertIs(const(np.int64(3)), const(3))
    with self.assertRaises(TypeError):
      const(2.5)
    with self.assertRaises(TypeError):
      const(True)
    with self.assertRaises(TypeError):
      AffineContext().const(1.5)

  def test_str(self):
    self.assertEqual(str(4 * d0 + 8), "d0 * 4 + 8")
    self.assertEqual(str(d0 - 3), "d0 - 3")
    self.assertEqual(str(d0 - s0), "d0 - s0")
    self.assertEqual(str((d0 + s0) // 4), "(d0 + s0) floordiv 4")
    self.assertEqual(str(d1 % 2), "d1 mod 2")

  def test_eval(self):
    e = (d0 * 3 + s0) % 4
    self.assertEqual(e.eval([2], [1]), 3)
    self.assertEqual(d0.ceildiv(4).eval([5]), 2)
    self.assertEqual((d0 // 4).eval([-1]), -1)
    self.assertEqual((d0 % 4).eval([-1]), 3)
    with self.assertRaises(PreconditionError):
      d1.eval([0])

# --------------------------------------------------------------------------- #

class TestMapsAndSets(unittest.TestCase):

  def test_map(self):
    m   = get_affine_map(1, 1, [d0 + s0, 5])
    self.assertEqual(m.num_dims, 1)
    self.assertEqual(m.num_symbols, 1)
    self.assertIs(m.results[1], const(5))
    self.assertEqual(m.range_sizes, [])
    self.assertEqual(m.num_inputs(), 2)
    self.assertIs(m, get_affine_map(1, 1, [d0 + s0, 5]))
    self.assertEqual(str(m), "(d0)[s0] -> (d0 + s0, 5)")

  def test_map_validation(self):
    with self.assertRaises(PreconditionError):
      get_affine_map(1, 0, [d1])
    with self.assertRaises(PreconditionError):
      get_affine_map(1, 0, [s0])
    with self.assertRaises(PreconditionError):
      get_affine_map(1, 0, [d0, d0], [const(4)])

  def test_set(self):
    st  = get_integer_set(1, 0, [d0, 10 - d0, d0 % 2], [False, False, True])
    self.assertEqual(len(st.constraints), 3)
    self.assertEqual(st.num_equalities(), 1)
    self.assertEqual(str(get_integer_set(1, 0, [d0], [False])),
                     "(d0) : (d0 >= 0)")
    with self.assertRaises(PreconditionError):
      get_integer_set(1, 0, [d0], [])
    with self.assertRaises(PreconditionError):
      get_integer_set(1, 0, [d1], [True])

# --------------------------------------------------------------------------- #

class TestAffineContext(unittest.TestCase):

  def test_values(self):
    ctx     = AffineContext()
    i, n    = ctx.new_value('i'), ctx.new_value('n')
    self.assertIsInstance(i, Sym)
    self.assertEqual(ctx.num_values(), 2)
    self.assertTrue(ctx.owns(n))
    self.assertFalse(ctx.owns(Sym('n')))

  def test_create_apply(self):
    ctx     = AffineContext()
    i, n    = ctx.new_value('i'), ctx.new_value('n')
    m       = ctx.get_map(1, 1, [ctx.dim(0) * 4, ctx.symbol(0)])
    op      = ctx.create_apply(m, [i, n])
    self.assertEqual(len(op.results), 2)
    self.assertEqual(op.operands, [i, n])
    self.assertIs(ctx.get_defining_op(op.results[0]), op)
    self.assertIsNone(ctx.get_defining_op(i))
    self.assertEqual(ctx.num_values(), 4)
    self.assertIn("affine_apply", str(op))

  def test_create_apply_errors(self):
    ctx     = AffineContext()
    i       = ctx.new_value('i')
    m       = ctx.get_map(1, 1, [ctx.dim(0)])
    with self.assertRaises(PreconditionError):
      ctx.create_apply(m, [i])
    with self.assertRaises(PreconditionError):
      ctx.create_apply(m, [i, Sym('x')])

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

if __name__ == '__main__':
  unittest.main()
