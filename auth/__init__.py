"""auth/ -- Session state machine, token persistence and route gating for RentAdmin.

Layer rule: auth/ imports from core/ and client/ plus third-party libraries.
It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
