from src.data_loading.accounts import (
    load_accounts,
    load_category_file,
    parse_account_record,
    parse_transaction
)
