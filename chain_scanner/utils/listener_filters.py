from typing import Any, Dict, List

from ..block_indexer.scan_config import Listener
from ..block_indexer.types import ConfigurationError


def _addresses_of(record: Dict[str, Any]) -> List[str]:
    """Адреса, которые упоминает результат транзакции: получатель и адреса логов."""
    addresses = []
    tx = record.get('Transaction') or {}
    if tx.get('To'):
        addresses.append(tx['To'])
    for log in record.get('Logs') or []:
        if log.get('Address'):
            addresses.append(log['Address'])
    return addresses


def contract_listener(tag: str, contract_address: str) -> Listener:
    """
    Слушатель транзакций одного контракта.

    Блок сам по себе не совпадает (у него нет адресов), он получает тег
    через совпавшие транзакции.
    """
    def matches(record: Dict[str, Any]) -> bool:
        return contract_address in _addresses_of(record)

    return Listener(tag=tag, filter=matches)


def parse_listeners(raw: str) -> List[Listener]:
    """'token:2J9w...,vote:xyz...' -> [contract_listener('token', '2J9w...'), ...]"""
    listeners = []
    for item in raw.split(','):
        item = item.strip()
        if not item:
            continue
        tag, _, address = item.partition(':')
        if not tag or not address:
            raise ConfigurationError(f"Invalid listener definition '{item}', expected 'tag:contract_address'")
        listeners.append(contract_listener(tag.strip(), address.strip()))
    return listeners
