# connectall_core/constants.py

# Secure store coordinates (keychain service/account pairs)
KEYSTORE_SERVICE = "conn.app"
ACCOUNT_USER_ID = "userId"
ACCOUNT_SIGNING_KEY = "sk.signing"

# connectionId = sha256( sorted([me, peer]).join(SEP) + SEP + ts )
CONNECTION_ID_SEPARATOR = "|"

# method recorded on connection records for the local-network transport
METHOD_MULTIPEER = "multipeer"

# Canonical card payload keys
CARD_USER_ID = "userId"
CARD_DISPLAY_NAME = "displayName"
CARD_PUBKEY = "pubKey"
CARD_PUBKEY_FPR = "pubKeyFingerprint"
CARD_TS = "ts"

# Wire envelope keys
ENVELOPE_PAYLOAD = "payloadB64"
ENVELOPE_SIGNATURE = "signatureB64"

ED25519_PUBLIC_KEY_LEN = 32
ED25519_PRIVATE_KEY_LEN = 32
ED25519_SIGNATURE_LEN = 64

DEFAULT_SEND_TIMEOUT = 5.0

# Upper bounds checked before any JSON parsing of incoming bytes
MAX_PAYLOAD_BYTES = 8 * 1024
MAX_ENVELOPE_BYTES = 16 * 1024
