"""
Image upload, retrieval and deletion.
"""
