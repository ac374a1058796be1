from .bulk_upload import BulkUploadBatch, BulkUploadFinding, BulkUploadRow  # noqa: F401
from .driver import (  # noqa: F401
    DriverAddress,
    DriverBasicInformation,
    DriverDocument,
    DriverEmploymentHistory,
    DriverIncident,
)
from .master_lookups import (  # noqa: F401
    AddressTypeLookup,
    CoverageTypeLookup,
    DocumentTypeLookup,
    EngineTypeLookup,
    FuelTypeLookup,
    MaterialTypeLookup,
    UsageTypeLookup,
    VehicleTypeLookup,
    WarehouseTypeLookup,
)
from .transporter import (  # noqa: F401
    TransporterAddress,
    TransporterContact,
    TransporterDocument,
    TransporterGeneralInfo,
    TransporterServiceArea,
    TransporterServiceAreaState,
)
from .vehicle import (  # noqa: F401
    VehicleBasicInformation,
    VehicleCapacity,
    VehicleDocument,
    VehicleOwnershipDetail,
    VehicleSpecification,
)
from .warehouse import (  # noqa: F401
    WarehouseBasicInformation,
    WarehouseSubLocation,
    WarehouseSubLocationCoordinate,
)
