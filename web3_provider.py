from web3 import Web3
import os
from dotenv import load_dotenv
from logger import setup_logger, mask_address

# Initialize logger
logger = setup_logger('web3_provider')

# Load environment variables
load_dotenv()

DEFAULT_RPC_URL = "https://sepolia.base.org"
DEFAULT_CHAIN_ID = 84532
DEFAULT_CHAIN_NAME = "Base Sepolia"


class Web3Provider:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super(Web3Provider, cls).__new__(cls)
            instance._initialize()
            cls._instance = instance
        return cls._instance

    def _initialize(self):
        # Configuration
        self.rpc_url = os.getenv("RPC_URL", DEFAULT_RPC_URL)
        self.chain_id = int(os.getenv("CHAIN_ID", DEFAULT_CHAIN_ID))
        self.chain_name = os.getenv("CHAIN_NAME", DEFAULT_CHAIN_NAME)
        self.account_address = os.getenv("ACCOUNT_ADDRESS")

        if self.account_address:
            logger.info(f"Configuration loaded: RPC_URL={self.rpc_url}, CHAIN_ID={self.chain_id}, ACCOUNT_ADDRESS={mask_address(self.account_address)}")
        else:
            logger.warning("ACCOUNT_ADDRESS not set in environment variables, writes are disabled")

        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url))
        if self.w3.is_connected():
            logger.info(f"Connected to blockchain at {self.rpc_url}")
        else:
            logger.error(f"Failed to connect to {self.chain_name} at {self.rpc_url}")
            raise ConnectionError(f"Failed to connect to {self.chain_name} at {self.rpc_url}")

    def get_web3(self):
        return self.w3


def get_web3():
    return Web3Provider().get_web3()


def required_chain():
    """(chain_id, chain_name) the league contract is deployed on"""
    return (
        int(os.getenv("CHAIN_ID", DEFAULT_CHAIN_ID)),
        os.getenv("CHAIN_NAME", DEFAULT_CHAIN_NAME),
    )
