# live_chat/routes/__init__.py
"""
Flask blueprints for the live chat service.

The app factory (live_chat.__init__.py) stores shared objects like
`chat_runtime`, `redis_mgr` and `error_tracker` into `app.extensions`
so the individual route modules can access them via
`from flask import current_app`.
"""
