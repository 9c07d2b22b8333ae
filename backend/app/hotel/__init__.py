"""
app/hotel/__init__.py

酒店领域模块
"""
