import unittest
from AFS.proof import Proof, yes, no, unknown, from_bool

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

class TestProof(unittest.TestCase):

  def test_singletons(self):
    self.assertIs(Proof.Yes(), yes)
    self.assertIs(Proof.Unknown(), unknown)
    self.assertIs(from_bool(True), yes)
    self.assertIs(from_bool(False), no)

  def test_truth(self):
    self.assertTrue(yes)
    self.assertFalse(no)
    with self.assertRaises(TypeError):
      bool(unknown)
    self.assertTrue(yes.is_proven())
    self.assertFalse(unknown.is_proven())
    self.assertEqual(str(unknown), "unknown")

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

if __name__ == '__main__':
  unittest.main()
