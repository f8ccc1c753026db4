"""Users domain - Workshop staff"""
