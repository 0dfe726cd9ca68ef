"""
AI English Tutor client core.

Navigation state, the writing-coach pipeline, reading lessons, tutor chat and
the recommended-content cache, driven by Supabase and a DeepSeek chat endpoint.
"""

__version__ = "1.0.0"
