from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"

# Message reference addressing the initial response of an interaction.
ORIGINAL_MESSAGE_REF = "@original"

# Permission bitmasks are serialized as unsigned 64-bit integers.
PERMISSION_BITS = 64
