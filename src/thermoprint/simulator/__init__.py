"""In-memory Bluetooth host for running print sessions without a printer."""
