"""
Command Line Interface Package

Command Structure:
- ordermemo version / config: utility commands
- ordermemo parse: debug the extractor against a saved email
- ordermemo backfill: one historical scan and match cycle
- ordermemo run: backfill, then watch the mailbox
"""
