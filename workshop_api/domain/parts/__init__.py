"""Parts domain - Inventory and low-stock detection"""
