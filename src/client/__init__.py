from client.client import FileServerClient, FileServerClientError

__all__ = ["FileServerClient", "FileServerClientError"]
