from typedrill.models.pattern import PatternStat, UserConfig

__all__ = [
    "PatternStat",
    "UserConfig",
]
