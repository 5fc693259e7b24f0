from repokit.core.base.repokit_base import Repokit, RepokitABC, RepokitABCMeta, RepokitMeta

__all__ = ["Repokit", "RepokitABC", "RepokitABCMeta", "RepokitMeta"]
