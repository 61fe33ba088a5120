# Routes package init
"""
Inkwell Backend — API Routes Package
======================================

Route Inventory:
    - chat.py:      WS   /ws/{user_id}            (live send + delivery)
    - messages.py:  POST /api/messages             (send)
                    GET  /api/messages/{user_id}   (history)
    - health.py:    GET  /health

Routes stay thin: they parse transport input, call MessageRelay or
SessionRegistry from app.state, and format the result.
"""
