"""Shared constants: DBC program layout and token input limits."""

# Meteora Dynamic Bonding Curve program
DBC_PROGRAM_ID = "dbcij3LWUppWqq96dh6gJWwBifmcGfLSB5D4DuSMaqN"

# First 8 bytes of VirtualPool account data (Anchor discriminator)
VIRTUAL_POOL_DISCRIMINATOR = bytes([213, 224, 5, 209, 98, 69, 119, 92])

# discriminator (8) + volatility tracker (64) + config pubkey (32)
POOL_CREATOR_OFFSET = 104
VIRTUAL_POOL_SIZE = 424

TOKEN_NAME_MIN_LENGTH = 3
TOKEN_SYMBOL_MAX_LENGTH = 10

KEYPAIR_SUFFIX = ".json"
