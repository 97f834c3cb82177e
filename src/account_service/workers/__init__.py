"""Background worker (ARQ) for scheduled maintenance."""
