from types import SimpleNamespace

from token_harness.abi import REQUIRED_FUNCTIONS, TOKEN_ABI, selector
from token_harness.preflight import check_contract, check_selectors_in_code, format_report

from .conftest import CONTRACT_ADDRESS


def fake_w3(code: bytes):
    return SimpleNamespace(eth=SimpleNamespace(get_code=lambda addr: code))


def runtime_code_with(*signatures):
    body = b"\x60\x80\x60\x40"
    for sig in signatures:
        body += b"\x63" + bytes.fromhex(selector(sig)[2:]) + b"\x14"
    return body


def test_deployed_contract_with_all_selectors():
    code = runtime_code_with(
        "mint(address,uint256)", "transfer(address,uint256)", "approve(address,uint256)",
        "transferFrom(address,address,uint256)", "balanceOf(address)", "allowance(address,address)",
    )
    report = check_contract(fake_w3(code), CONTRACT_ADDRESS, TOKEN_ABI, REQUIRED_FUNCTIONS)
    assert report["deployed"]
    assert report["missing"] == []
    assert report["selector_presence"]["transfer(address,uint256)"] is True


def test_missing_selector_is_reported():
    code = runtime_code_with("transfer(address,uint256)", "balanceOf(address)")
    report = check_contract(fake_w3(code), CONTRACT_ADDRESS, TOKEN_ABI, ["transfer", "balanceOf", "approve"])
    assert report["missing"] == ["approve(address,uint256)"]
    assert any("MISSING" in line for line in format_report(report))


def test_no_code_means_not_deployed():
    report = check_contract(fake_w3(b""), CONTRACT_ADDRESS, TOKEN_ABI, REQUIRED_FUNCTIONS)
    assert not report["deployed"]
    assert report["selector_presence"] == {}


def test_check_selectors_ignores_case_and_prefix():
    res = check_selectors_in_code("0x63A9059CBB14", {"transfer(address,uint256)": "0xa9059cbb"})
    assert res == {"transfer(address,uint256)": True}
