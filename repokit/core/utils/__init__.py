from repokit.core.utils.checks import ifnone

__all__ = ["ifnone"]
