"""
Core Layer

Configuration, logging, exceptions and collaborator interfaces shared by the
caching engine and the HTTP application.
"""
