from hello_server.db.models.session_store import SessionRecord

__all__ = ["SessionRecord"]
