"""Core reconciliation logic for Kafka SCRAM users.

Module Structure:
    - kafka/          : Kafka admin client and user operations
    - reconciler.py   : Connect/Observe/Create/Update/Delete state machine
    - resources.py    : User resource model and status conditions
    - providers.py    : Provider configs, usage tracking, credential extraction
    - credentials.py  : Password generation and connection details
    - manifest.py     : YAML desired-state manifests

Usage Pattern:
    Import explicitly when needed:
        from kafka_users.core.manifest import load_manifest
        from kafka_users.core.reconciler import Connector, reconcile_once
"""
