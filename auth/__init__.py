"""auth/ -- Credential hardening and authentication core for SafeVault.

Components, leaves first:
  gate.py       -- InputGate: deny-list validation and HTML-safe sanitization
  passwords.py  -- CredentialHasher: CSPRNG salts, bcrypt digests
  store.py      -- UserStore: persistence with UNIQUE username/email
  service.py    -- AuthService: register / login orchestration
  tokens.py     -- session issuance (signed JWT + cookie)

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
