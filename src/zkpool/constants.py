"""Protocol constants shared by the pool, the circuit backend and clients."""

# Scalar field of BN254, the field the transaction circuit works in.
FIELD_SIZE = 21888242871839275222246405745257275088548364400416034343698204186575808495617

MAX_EXT_AMOUNT = 2**248
MAX_FEE = 2**248

# Notes carry 31-byte amounts and blindings.
NOTE_VALUE_BYTES = 31

DEFAULT_TREE_HEIGHT = 23
DEFAULT_ROOT_HISTORY_SIZE = 100

# Two circuit variants are deployed: 2 and 16 inputs, always 2 outputs.
SUPPORTED_INPUT_COUNTS = (2, 16)
OUTPUT_COUNT = 2

assert MAX_EXT_AMOUNT + MAX_FEE < FIELD_SIZE, "public amount could wrap around the field"
