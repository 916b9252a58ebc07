"""Kafka SCRAM user provider package.

To reconcile users:
    from kafka_users.core.reconciler import Connector, reconcile_once

To use the Kafka admin operations directly:
    from kafka_users.core.kafka import new_admin_client, get_user, create_user
"""
