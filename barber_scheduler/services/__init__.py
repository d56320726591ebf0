"""
Services package - scheduling use-cases.

Services depend on the repository interfaces in ``domain.interfaces`` and
own the transaction boundary for every write.
"""
