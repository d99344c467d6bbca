"""
Tunable limits for the constraint algebra.

Values are read at call time, so callers may adjust them for a query.
"""

# Largest number of rows a single Fourier-Motzkin step may produce before
# the elimination is refused with EliminationLimitError
MAX_FM_CONSTRAINTS = 4096

# Prefix of the integer symbols handed to the SMT backend
SMT_SYMBOL_PREFIX = "afs_"

# Column width used when printing constraint rows
ROW_PRINT_WIDTH = 4
