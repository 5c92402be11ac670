"""OFAT Engine API — FastAPI + MCP interface layer."""
