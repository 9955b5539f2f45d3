from ensfeed.clients.rpc import RPC

__all__ = ["RPC"]
