"""
Domain models shared by adapters and views.
"""
