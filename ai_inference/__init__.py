"""ai-inference - prompt an LLM endpoint from CI, optionally with GitHub MCP tools"""
__version__ = "0.1.0"
