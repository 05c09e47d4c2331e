"""
auth — User authentication module.

Provides:
  • Session token creation & verification
  • Password hashing (bcrypt, cost factor 12)
  • Signup / login / logout / profile API routes
  • ``get_current_user_id`` / ``get_current_user`` FastAPI dependencies
"""
