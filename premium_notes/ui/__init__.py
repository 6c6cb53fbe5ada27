"""
Streamlit user interface, launched by ``premium_notes.server``.
"""
