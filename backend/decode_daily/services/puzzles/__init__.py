"""Daily puzzle domain services: catalogs, selection, scoring and rounds.

Everything in this package is plain Python that HTTP routes and socket
handlers call into; the only Flask-aware pieces are the SQL-backed key-value
store and the background tick worker.
"""

GAME_IDS = ("decode", "flashdance", "anagrams")
