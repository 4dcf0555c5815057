# Red Bricks account API
# Launchpad keeps no user tables. Identity comes from the Red Bricks Laravel
# API (Sanctum tokens):

"""
Endpoints used (prefix /api/frontend):
- POST /login                  - email + password -> {token, user}
- GET  /profile                - bearer token -> user (sometimes wrapped as {user: {...}})
- GET  /launchpad/team-info    - bearer token -> {id, name, tier, api_token, ...}

The user's email is the ownership key for tenants (tenants.admin_email).
"""
