"""Component Factory for strategy instantiation.

Every engine component is built from an explicit Settings value handed
to the factory, so two factories with different settings never share
state.
"""

import logging

from sla_engine.core.config import Settings
from sla_engine.interfaces.analytics import BaseUsageAggregator
from sla_engine.interfaces.classifier import BasePackageClassifier
from sla_engine.interfaces.numbering import BaseSequenceAllocator
from sla_engine.interfaces.template import BaseVariableSubstitutor
from sla_engine.strategies.analytics import UsageAggregator
from sla_engine.strategies.classifier import HeuristicPackageClassifier
from sla_engine.strategies.numbering import SequenceAllocator
from sla_engine.strategies.substitution import VariableMapper, VariableSubstitutor

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating engine components from configuration.

    Example:
        ```python
        settings = load_settings()
        factory = ComponentFactory(settings)

        result = factory.get_substitutor().substitute(template, values)
        detected = factory.get_classifier().classify(text, items, total, count)
        ```
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the factory.

        Args:
            settings: Engine settings used to configure every component.
        """
        self._settings = settings
        self._substitutor_cache: BaseVariableSubstitutor | None = None
        self._classifier_cache: BasePackageClassifier | None = None
        self._allocator_cache: BaseSequenceAllocator | None = None
        self._aggregator_cache: BaseUsageAggregator | None = None
        self._mapper_cache: VariableMapper | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_substitutor(self) -> BaseVariableSubstitutor:
        """Get the variable substitutor, bounded by the configured limits."""
        if self._substitutor_cache is None:
            logger.info("Instantiating variable substitutor")

            self._substitutor_cache = VariableSubstitutor(
                max_template_size=self._settings.max_template_size,
                max_variable_substitutions=self._settings.max_variable_substitutions,
            )

        return self._substitutor_cache

    def get_classifier(self, classifier_type: str = "heuristic") -> BasePackageClassifier:
        """Get a package classifier instance.

        Args:
            classifier_type: The classifier strategy to instantiate.

        Returns:
            A BasePackageClassifier implementation instance.

        Raises:
            ValueError: If the classifier type is unknown.
        """
        if self._classifier_cache is None:
            logger.info(f"Instantiating package classifier: {classifier_type}")

            match classifier_type:
                case "heuristic":
                    self._classifier_cache = HeuristicPackageClassifier(
                        currency_symbol=self._settings.currency_symbol,
                        min_valid_confidence=self._settings.min_valid_confidence,
                    )
                case _:
                    raise ValueError(
                        f"Unknown classifier type: {classifier_type}. "
                        f"Valid options: 'heuristic'"
                    )

        return self._classifier_cache

    def get_allocator(self) -> BaseSequenceAllocator:
        if self._allocator_cache is None:
            logger.info("Instantiating sequence allocator")
            self._allocator_cache = SequenceAllocator()
        return self._allocator_cache

    def get_aggregator(self) -> BaseUsageAggregator:
        if self._aggregator_cache is None:
            logger.info("Instantiating usage aggregator")
            self._aggregator_cache = UsageAggregator()
        return self._aggregator_cache

    def get_mapper(self) -> VariableMapper:
        if self._mapper_cache is None:
            logger.info("Instantiating variable mapper")
            self._mapper_cache = VariableMapper()
        return self._mapper_cache

    def number_format(self, document_kind: str) -> str:
        """Configured number format for ``quote``, ``invoice`` or ``agreement``.

        Raises:
            ValueError: If the document kind is unknown.
        """
        match document_kind:
            case "quote":
                return self._settings.quote_number_format
            case "invoice":
                return self._settings.invoice_number_format
            case "agreement":
                return self._settings.agreement_number_format
            case _:
                raise ValueError(
                    f"Unknown document kind: {document_kind}. "
                    f"Valid options: 'quote', 'invoice', 'agreement'"
                )

    def clear_cache(self) -> None:
        """Clear all cached component instances."""
        self._substitutor_cache = None
        self._classifier_cache = None
        self._allocator_cache = None
        self._aggregator_cache = None
        self._mapper_cache = None
        logger.debug("Component factory cache cleared")
