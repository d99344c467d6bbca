
from .adt import ADT
from .adt import memo as ADTmemo

from .prelude import *

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Three-valued answers for analysis queries.  `unknown` means "not proven"
# and may never be read as "proven false".

Proof = ADT("""
module Proof {
  answer  = Yes     ()
          | No      ()
          | Unknown ()
}
""")
ADTmemo(Proof,['Yes','No','Unknown'])

yes     = Proof.Yes()
no      = Proof.No()
unknown = Proof.Unknown()

def from_bool(b):
  return yes if b else no

@extclass(Proof.answer)
def __bool__(a):
  if a is unknown:
    raise TypeError("an unknown analysis answer has no truth value; "
                    "test against 'yes' or 'no' explicitly")
  return a is yes

@extclass(Proof.answer)
def __str__(a):
  return type(a).__name__.lower()

@extclass(Proof.answer)
def is_proven(a):
  return a is not unknown

del __bool__, __str__, is_proven
