"""
User storage.

  base     UserStore interface consumed by the identity core
  memory   dict-backed store (memory accounts, test double)
  sql      SQLAlchemy-backed store for persisted realms
  routing  store that serves the MEMORY realm from memory and the rest from SQL
"""
