"""forum/ -- Boards, posts, comments and the listing engine.

Layer rule: forum/ imports from core/ and auth/ (it shares the users table so
content and user counters commit together). It does NOT import from api/.
"""
