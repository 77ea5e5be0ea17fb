"""
Annotators wrapping external tools
"""
