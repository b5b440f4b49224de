"""Generate typed Python models from Starknet OpenRPC specifications."""
