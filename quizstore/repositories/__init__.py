"""
Persistence adapters.

``base.QuizRepository`` is the contract; ``json_storage`` keeps everything in
JSON files next to the application, ``sql_repository`` maps it onto SQL tables.
Services depend on the contract and never on a concrete backend.
"""
