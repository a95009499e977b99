"""auth/ -- Authentication and authorization package for the forum backend.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/ or forum/.
api/ and forum/ import from auth/, not the other way around.
"""
