"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidContractTerms(DomainException):
    """Contract terms cannot produce a valid schedule"""

    pass


class ContractNotFound(DomainException):
    """Referenced contract does not exist"""

    pass


class UnknownInstallment(DomainException):
    """Payment references an installment number the contract does not have"""

    pass


class DuplicatePayment(DomainException):
    """Payment id was already applied to this contract"""

    pass


class InstallmentAlreadyPaid(DomainException):
    """Installment was settled by an earlier payment"""

    pass


class InvalidPaymentAmount(DomainException):
    """Payment amount or its principal/interest split is malformed"""

    pass


class UnknownLateFee(DomainException):
    """Referenced late fee does not exist or is already settled"""

    pass


class ConcurrentModificationError(DomainException):
    """Contract changed since it was read; the caller must reload and retry"""

    pass


class NegativeBalanceAttempt(DomainException):
    """Ledger update would push the remaining balance below zero"""

    pass
