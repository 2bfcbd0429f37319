import time

JOB_PREFIX = "JOB"
QUOTE_PREFIX = "QTE"
INVOICE_PREFIX = "INV"


def generate_number(prefix: str) -> str:
    """Human-facing document number: PREFIX-<epoch millis>."""
    return f"{prefix}-{int(time.time() * 1000)}"
