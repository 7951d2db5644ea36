"""
Import de dumps SQL : extraction, tokenisation, normalisation, chargement
"""
