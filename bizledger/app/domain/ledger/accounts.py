"""
Chart of Accounts.

The fixed set of account codes the ledger posts to.
"""

from typing import List, Optional

from bizledger.app.models.ledger_enums import ExpenseCategory, NormalBalance
from bizledger.app.schemas.ledger import AccountResponse


CASH_BANK = "1000_cash_bank"
ACCOUNTS_RECEIVABLE = "1100_accounts_receivable"
SALES_REVENUE = "4000_sales_revenue"
GENERAL_EXPENSES = "5000_general_expenses"
OPERATING_EXPENSES = "5100_operating_expenses"
CAPITAL_EXPENSES = "5200_capital_expenses"


CHART_OF_ACCOUNTS: List[AccountResponse] = [
    AccountResponse(code=CASH_BANK, name="Cash & Bank", normal_balance=NormalBalance.DEBIT),
    AccountResponse(code=ACCOUNTS_RECEIVABLE, name="Accounts Receivable", normal_balance=NormalBalance.DEBIT),
    AccountResponse(code=SALES_REVENUE, name="Sales Revenue", normal_balance=NormalBalance.CREDIT),
    AccountResponse(code=GENERAL_EXPENSES, name="General Expenses", normal_balance=NormalBalance.DEBIT),
    AccountResponse(code=OPERATING_EXPENSES, name="Operating Expenses", normal_balance=NormalBalance.DEBIT),
    AccountResponse(code=CAPITAL_EXPENSES, name="Capital Expenses", normal_balance=NormalBalance.DEBIT),
]


_EXPENSE_ACCOUNTS = {
    ExpenseCategory.WORKING_CAPITAL.value: OPERATING_EXPENSES,
    ExpenseCategory.FIXED_CAPITAL.value: CAPITAL_EXPENSES,
}


def expense_account_for(category: Optional[str]) -> str:
    """Expense account debited for an expenditure category; uncategorized goes to general."""
    return _EXPENSE_ACCOUNTS.get(category or "", GENERAL_EXPENSES)
