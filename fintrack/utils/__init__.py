"""Month key and amount helpers shared by models and the ledger."""
