"""
Product CRUD with paginated listing.
"""
