import unittest

from AFS.flat_constraints import FlatAffineConstraints
from AFS.affine_ir import dim, get_integer_set
from AFS.smt import has_smt_solver, formula

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

FAC = FlatAffineConstraints
d0  = dim(0)

@unittest.skipUnless(has_smt_solver(), "no SMT solver installed for pysmt")
class TestIntegerFeasibility(unittest.TestCase):

  def even_between(self, lo, hi):
    return FAC.from_integer_set(
      get_integer_set(1, 0, [d0 % 2, d0 - lo, hi - d0], [True, False, False]))

  def test_parity(self):
    cst = self.even_between(0, 7)
    self.assertFalse(cst.is_integer_empty())
    cst.set_id_to_constant(0, 7)
    self.assertTrue(cst.is_integer_empty())

  def test_rational_only(self):
    # 2x == 1
    cst = FAC(1)
    cst.add_equality([2, -1])
    self.assertTrue(cst.is_integer_empty())
    self.assertIsNone(cst.find_integer_sample())

  def test_universal(self):
    self.assertFalse(FAC(2, 1).is_integer_empty())
    self.assertEqual(FAC().find_integer_sample(), [])

  def test_sample(self):
    cst     = self.even_between(3, 5)
    sample  = cst.find_integer_sample()
    self.assertEqual(len(sample), cst.num_ids)
    self.assertEqual(sample[0], 4)
    self.assertEqual(sample[1], 2)

  def test_agrees_with_elimination(self):
    # 0 <= x <= 5,  x + 2 <= y <= 10
    cst = FAC(2)
    cst.add_constant_lower_bound(0, 0)
    cst.add_constant_upper_bound(0, 5)
    cst.add_inequality([-1, 1, -2])
    cst.add_constant_upper_bound(1, 10)
    self.assertFalse(cst.is_empty())
    self.assertFalse(cst.is_integer_empty())
    cst.add_constant_lower_bound(1, 11)
    self.assertTrue(cst.is_empty())
    self.assertTrue(cst.is_integer_empty())

  def test_formula_symbols(self):
    cst = FAC(1, 1, 1)
    cst.add_inequality([1, -1, 2, 0])
    names = sorted( s.symbol_name() for s in formula(cst).get_free_variables() )
    self.assertEqual(names, ["afs_d0", "afs_l0", "afs_s0"])

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

if __name__ == '__main__':
  unittest.main()
