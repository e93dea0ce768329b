"""HTTP and WebSocket interface of Scroll Summit."""
