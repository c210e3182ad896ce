"""Pure hours accounting core.

Modules here take plain records and return plain values. They never import
the web framework or the ORM.
"""
