import unittest
from AFS.affine_ir import dim, symbol, const
from AFS import affine_expr
from AFS.prelude import PreconditionError

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

d0, d1  = dim(0), dim(1)
s0      = symbol(0)

class TestMultipleOf(unittest.TestCase):

  def test_constants(self):
    for c in range(-20, 21):
      for f in [1, 2, 3, 4, -4, 7]:
        self.assertEqual(const(c).is_multiple_of(f), c % f == 0,
                         f"{c} multiple of {f}")

  def test_sum_and_product(self):
    e = 4 * d0 + 8
    self.assertTrue(e.is_multiple_of(4))
    self.assertTrue(e.is_multiple_of(2))
    self.assertFalse(e.is_multiple_of(8))
    self.assertFalse((d0 + s0).is_multiple_of(4))
    self.assertTrue((d0 * 6).is_multiple_of(3))
    self.assertTrue(((d0 * 4) * s0).is_multiple_of(2))

  def test_div_and_mod(self):
    self.assertEqual(((d0 * 4) % 8).largest_known_divisor(), 4)
    self.assertTrue(((d0 * 4) % 8).is_multiple_of(4))
    self.assertFalse(((d0 * 4) % 8).is_multiple_of(8))
    self.assertTrue(((d0 * 8) // 4).is_multiple_of(2))
    self.assertFalse(((d0 * 8) // 4).is_multiple_of(4))
    self.assertEqual(((d0 * 3) // 2).largest_known_divisor(), 1)

  def test_zero(self):
    self.assertEqual(const(0).largest_known_divisor(), 0)
    self.assertTrue(const(0).is_multiple_of(5))

  def test_bad_factor(self):
    with self.assertRaises(PreconditionError):
      d0.is_multiple_of(0)
    with self.assertRaises(PreconditionError):
      d0.is_multiple_of(2.0)

# --------------------------------------------------------------------------- #

class TestStructure(unittest.TestCase):

  def test_kinds(self):
    self.assertTrue(const(3).is_constant())
    self.assertFalse(d0.is_constant())
    self.assertTrue(d0.is_dim())
    self.assertTrue(s0.is_symbol())
    self.assertFalse(s0.is_dim())

  def test_symbolic(self):
    self.assertTrue((s0 * 2 + 3).is_symbolic_or_constant())
    self.assertFalse((d0 + s0).is_symbolic_or_constant())

  def test_pure_affine(self):
    self.assertTrue(((d0 + 1) // 2).is_pure_affine())
    self.assertTrue((d0 * 3 + s0).is_pure_affine())
    self.assertFalse((d0 * s0).is_pure_affine())
    self.assertFalse((d0 // s0).is_pure_affine())

  def test_uses(self):
    e = (d0 + s0) % 4
    self.assertTrue(e.uses_dim(0))
    self.assertFalse(e.uses_dim(1))
    self.assertTrue(e.uses_symbol(0))
    self.assertEqual(len(list(e.walk())), 5)

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

if __name__ == '__main__':
  unittest.main()
