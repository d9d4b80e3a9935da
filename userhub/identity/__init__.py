"""
Identity core: user records, realms, factories and principal extraction.

Everything here is synchronous and free of HTTP and ORM concerns. Storage
is reached only through the UserStore interface in ``userhub.stores``.
Import from the submodules directly, e.g.
``from userhub.identity.extractor import IdentityExtractor``.
"""
