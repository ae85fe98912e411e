# =============================================================================
# app/ - TutorDesk HTTP Layer
# =============================================================================
# FastAPI app (main.py), settings (config.py), API errors (exceptions.py),
# Supabase auth (auth/), feature routers (routers/) and live notification
# sockets (websocket/).
#
# Routers validate input, apply the caller's role and family scope, then
# hand off to core/services. Follow-up emails go out via background.py.
# =============================================================================
