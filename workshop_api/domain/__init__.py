"""Domain packages, one per business area (router / service / repository / schemas)"""
