from dataclasses import dataclass


@dataclass(frozen=True)
class TransferOptions:
    """
    Value Object describing how a closure is copied to a host.
    Never decides whether it is copied.
    """
    use_compression: bool = True
    use_substitutes: bool = True

    def to_copy_flags(self) -> list[str]:
        flags = []
        if self.use_compression:
            flags.append("--gzip")
        if self.use_substitutes:
            flags.append("--use-substitutes")
        return flags
