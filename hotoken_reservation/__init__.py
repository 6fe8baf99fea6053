"""
Hotoken Reservation Package Initialization

This package provides the settlement core of a whitelisted token sale. It accepts
incoming value transfers, converts them into HTKN balances using a configurable USD
rate table and discount, enforces the whitelist and minimum-purchase policy and
records every contribution in a persistent ledger.

The package includes:
- Owner access control and the pause switch gating administrative distribution
- Whitelist, USD rate table, discount policy and purchase ledger
- Checked 256-bit unsigned arithmetic for every token computation
- A transactional engine that commits or reverts each invocation as a whole
- JSON persistence of the sale state
- MCP server and HTTP action API front-ends
"""
