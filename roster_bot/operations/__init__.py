"""
Operations Layer

Business logic for roster uploads, composed over the DocumentStore interface
and the database layer. Each module covers one stage or record kind:

- row_extraction: spreadsheet row -> typed candidate
- reconciliation: gained metrics and history decisions
- merge: the document written back for a row
- upload_operations: CSV intake, per-upload batch and error boundary
- screenshot_operations: players tracked from screenshot analysis
"""
