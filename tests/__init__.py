"""
Test Suite for ordermemo

Test Structure:
- fixtures/: Order email samples and builders
- unit/: Unit tests mirroring src/ package structure
- integration/: CLI tests run in-process with CliRunner

Test Categories:
- Core utilities (currency, money, dates, config)
- Amazon order extraction and matching
- YNAB client and transaction cache
- IMAP fetching and batch extraction
- Sync orchestration

All order emails and transactions are synthetic. IMAP and HTTP are mocked.
"""
