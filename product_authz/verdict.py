# product_authz/verdict.py
import enum


class Verdict(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    INDETERMINATE = "INDETERMINATE"

    @classmethod
    def parse(cls, raw):
        """Map a decision-service answer to ALLOW or DENY, anything else to INDETERMINATE."""
        if isinstance(raw, str):
            value = raw.strip().upper()
            if value == "ALLOW":
                return cls.ALLOW
            if value == "DENY":
                return cls.DENY
        return cls.INDETERMINATE
