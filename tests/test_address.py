import pytest

from core.address import (
    AddressError,
    WalletResolver,
    canonical_address,
    parse_address,
)
from core.descriptors import AddressEquivalenceClass, FaucetType
from core.registry import (
    EQUIVALENCE_CLASSES,
    ETH_ADDRESS,
    ETH_ID_ADDRESS,
    F1_ADDRESS,
    INVALID_ADDRESSES,
    T0_ADDRESS,
    T1_ADDRESS,
    T410_ADDRESS,
)

EVM_HEX = "b7aa1e9c847cda5f60f1ae6f65c3eae44848d41f"


class TestParseAddress:
    """Syntactic decoding of every supported encoding."""

    def test_evm_address_is_case_insensitive(self):
        assert canonical_address(ETH_ADDRESS) == f"evm:{EVM_HEX}"
        assert canonical_address(ETH_ADDRESS.upper().replace("0X", "0x")) == (
            f"evm:{EVM_HEX}"
        )

    def test_delegated_address_decodes_to_evm_form(self):
        assert canonical_address(T410_ADDRESS) == canonical_address(ETH_ADDRESS)

    def test_actor_id_and_masked_id_agree(self):
        assert canonical_address(T0_ADDRESS) == "id:175013"
        assert canonical_address(ETH_ID_ADDRESS) == "id:175013"

    def test_network_prefix_is_not_part_of_identity(self):
        assert canonical_address(T1_ADDRESS) == canonical_address(F1_ADDRESS)
        assert canonical_address(T1_ADDRESS).startswith("p1:")
        assert parse_address(F1_ADDRESS).network_prefix == "f"
        assert parse_address(T1_ADDRESS).network_prefix == "t"
        assert parse_address(ETH_ADDRESS).network_prefix is None

    def test_surrounding_whitespace_is_ignored(self):
        assert canonical_address(f"  {T1_ADDRESS}\n") == canonical_address(
            T1_ADDRESS
        )

    def test_evm_form_of_actor_id_is_masked(self):
        assert parse_address(T0_ADDRESS).evm_form == ETH_ID_ADDRESS[2:]
        assert parse_address(T1_ADDRESS).evm_form is None

    def test_bad_checksum_rejected(self):
        corrupted = "t16" + T1_ADDRESS[3:]
        with pytest.raises(AddressError):
            parse_address(corrupted)

    @pytest.mark.parametrize("raw", INVALID_ADDRESSES)
    def test_malformed_addresses_rejected(self, raw):
        with pytest.raises(AddressError):
            parse_address(raw)

    def test_unknown_protocol_rejected(self):
        with pytest.raises(AddressError):
            parse_address("t9abcdef")

    def test_none_rejected(self):
        with pytest.raises(AddressError):
            parse_address(None)

    def test_address_error_is_value_error(self):
        assert issubclass(AddressError, ValueError)


class TestWalletKey:
    """Faucet-specific wallet identity."""

    def test_erc20_faucet_keys_by_evm_form(self):
        usdfc = FaucetType.CALIBNET_USDFC
        resolver = WalletResolver()
        key = resolver.wallet_key(usdfc, ETH_ADDRESS)
        assert resolver.wallet_key(usdfc, T410_ADDRESS) == key
        assert key.wallet == f"evm:{EVM_HEX}"

    def test_erc20_faucet_keeps_actor_id_distinct_from_delegated(self):
        usdfc = FaucetType.CALIBNET_USDFC
        resolver = WalletResolver(EQUIVALENCE_CLASSES)
        assert resolver.same_wallet(usdfc, T0_ADDRESS, ETH_ID_ADDRESS)
        assert not resolver.same_wallet(usdfc, T0_ADDRESS, ETH_ADDRESS)
        assert resolver.wallet_key(usdfc, T0_ADDRESS).wallet == (
            f"evm:{ETH_ID_ADDRESS[2:]}"
        )

    def test_erc20_faucet_rejects_address_without_evm_form(self):
        with pytest.raises(AddressError):
            WalletResolver().wallet_key(FaucetType.CALIBNET_USDFC, T1_ADDRESS)

    def test_native_faucet_joins_declared_equivalence_class(self):
        fil = FaucetType.CALIBNET_FIL
        resolver = WalletResolver(EQUIVALENCE_CLASSES)
        keys = {
            resolver.wallet_key(fil, raw)
            for raw in (ETH_ADDRESS, T410_ADDRESS, T0_ADDRESS, ETH_ID_ADDRESS)
        }
        assert len(keys) == 1
        assert keys.pop().wallet == "delegated-wallet"

    def test_native_faucet_without_classes_uses_canonical_form(self):
        fil = FaucetType.CALIBNET_FIL
        resolver = WalletResolver()
        assert resolver.wallet_key(fil, T410_ADDRESS).wallet == f"evm:{EVM_HEX}"
        assert resolver.wallet_key(fil, T0_ADDRESS).wallet == "id:175013"
        assert not resolver.same_wallet(fil, T410_ADDRESS, T0_ADDRESS)

    def test_same_wallet_differs_per_faucet(self):
        resolver = WalletResolver(EQUIVALENCE_CLASSES)
        fil_key = resolver.wallet_key(FaucetType.CALIBNET_FIL, ETH_ADDRESS)
        usdfc_key = resolver.wallet_key(FaucetType.CALIBNET_USDFC, ETH_ADDRESS)
        assert fil_key != usdfc_key

    def test_str_names_faucet_and_wallet(self):
        resolver = WalletResolver(EQUIVALENCE_CLASSES)
        key = resolver.wallet_key(FaucetType.CALIBNET_FIL, T1_ADDRESS)
        assert str(key) == "CalibnetFIL/secp256k1-wallet"

    def test_conflicting_classes_rejected(self):
        classes = (
            AddressEquivalenceClass("first", (ETH_ADDRESS,)),
            AddressEquivalenceClass("second", (T410_ADDRESS,)),
        )
        with pytest.raises(ValueError):
            WalletResolver(classes)
