from .builders import (
    BASE_CHAIN_ID,
    STAGE_ONE,
    STAGE_TWO,
    TEST_CONTRACT,
    TEST_OWNER,
    TEST_PRIV_KEY,
    TEST_RECEIVER,
    TEST_RPC_URL,
    TEST_TX_HASH,
    creation_log,
    erc1155_data,
    erc721_data,
    make_config,
    make_fake_client,
    make_outcome,
    make_receipt,
)
