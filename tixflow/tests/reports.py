"""
Raw report builders shared by the tests.
"""

PKG = "0xpkg"
SUI = "0x2::sui::SUI"


def created(object_id, object_type, owner):
    return {"type": "created", "objectId": object_id, "objectType": object_type, "owner": owner}


def mutated(object_id, object_type, owner):
    return {"type": "mutated", "objectId": object_id, "objectType": object_type, "owner": owner}


def addr(address):
    return {"AddressOwner": address}


def shared(version=1):
    return {"Shared": {"initial_shared_version": version}}


def balance(address, amount):
    return {"owner": addr(address), "coinType": SUI, "amount": str(amount)}


def report(status="success", error=None, changes=None, balances=None, events=None, fee=None, digest="0xdigest"):
    """Build a report; pass None to omit a section."""
    status_block = {"status": status}
    if error is not None:
        status_block["error"] = error
    effects = {"status": status_block}
    if fee is not None:
        effects["gasUsed"] = {"computationCost": str(fee), "storageCost": "0", "storageRebate": "0"}
    raw = {"digest": digest, "effects": effects}
    if changes is not None:
        raw["objectChanges"] = changes
    if balances is not None:
        raw["balanceChanges"] = balances
    if events is not None:
        raw["events"] = events
    return raw
