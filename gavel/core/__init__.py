"""Core auction engine: ledger, admission, state machine, settlement"""
