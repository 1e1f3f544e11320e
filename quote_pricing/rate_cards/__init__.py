"""
Module Rate Cards - Résolution des prix unitaires depuis le catalogue des grilles tarifaires.
"""
