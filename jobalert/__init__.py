"""
Job Alert - Manual pipeline trigger and skills embedding helper

Triggers the external scrape, score and notify job pipeline on demand,
and generates text embeddings for matching job listings against the
user's configured skills.
"""

__version__ = "0.3.0"
__author__ = "Job Alert"
