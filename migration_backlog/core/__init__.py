"""
Core components: jobs, errors, source and queue store clients
"""
