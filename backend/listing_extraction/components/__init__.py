"""
Components layer of the extraction pipeline.

Each module is one stage with an explicit contract (see `contracts.py`):
format_classifier -> prompt_composer -> (completion client) -> response_parser
-> response_router -> property_validator -> result_assembler.
"""
