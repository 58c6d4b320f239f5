"""
Infrastructure layer - openpyxl workbooks, SQLite, config files, logging.
"""
