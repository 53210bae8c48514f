"""Asyncio TCP chat relay: server, client, wire protocol, chat state and bubble layout."""

__version__ = "0.1.0"