""" Turn ASDL grammars into checked Python class hierarchies.

    Every ASDL type becomes a class, and every constructor of a sum type
    becomes a subclass of its type.  Objects are type-checked against the
    grammar when they are built.  `memo` additionally hash-conses chosen
    constructors so that structurally equal objects are the same object.
"""

import asdl
from types import ModuleType
from weakref import WeakValueDictionary

def _asdl_parse(str):
    parser = asdl.ASDLParser()
    return parser.parse(str)

_builtin_checks = {
    'string'  : lambda x: type(x) is str,
    'int'     : lambda x: type(x) is int,
    'object'  : lambda x: x is not None,
    'float'   : lambda x: type(x) is float,
    'bool'    : lambda x: type(x) is bool,
}

_builtin_keymap = {
    'string'  : lambda x: x,
    'int'     : lambda x: x,
    'object'  : lambda x: x,
    'float'   : lambda x: x,
    'bool'    : lambda x: x,
}

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# argument binding and checking, shared by __init__ and memoized __new__

def _bind_args(cname, names, args, kwargs):
    if len(args) > len(names):
        raise TypeError(f"{cname} takes {len(names)} arguments "
                        f"but {len(args)} were given")
    vals    = list(args) + [None] * (len(names) - len(args))
    given   = [True] * len(args) + [False] * (len(names) - len(args))
    for nm,v in kwargs.items():
        if nm not in names:
            raise TypeError(f"{cname} got an unexpected argument '{nm}'")
        i     = names.index(nm)
        if given[i]:
            raise TypeError(f"{cname} got multiple values for argument '{nm}'")
        vals[i], given[i] = v, True
    for nm,g in zip(names,given):
        if not g:
            raise TypeError(f"{cname} missing argument '{nm}'")
    return vals

def _make_field_check(modname, i, f, CHK, SC):
    typname   = f"{modname}.{f.type}" if f.type in SC else f.type
    chk       = CHK[f.type]
    def bad(what):
        raise TypeError(f"expected arg {i} \"{f.name}\" to be {what}")

    if f.seq:
        def check(x):
            if type(x) is not list: bad("a list")
            for e in x:
                if not chk(e): bad(f"a list of type \"{typname}\"")
    elif f.opt:
        def check(x):
            if x is not None and not chk(x): bad(f"type \"{typname}\"")
    else:
        def check(x):
            if not chk(x): bad(f"type \"{typname}\"")
    return check

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #

def _build_superclasses(asdl_mod):
    scs = {}
    def create_invalid_init(nm):
        def invalid_init(self, *args, **kwargs):
            raise TypeError(f"{nm} should never be instantiated")
        return invalid_init

    for nm,v in asdl_mod.types.items():
        if isinstance(v,asdl.Sum):
            scs[nm] = type(nm,(),{"__init__" : create_invalid_init(nm)})
        elif isinstance(v,asdl.Product):
            scs[nm] = type(nm,(),{})
    return scs

def _build_checks(scs, ext_checks):
    checks = _builtin_checks.copy()
    checks.update(ext_checks)
    for nm,sc in scs.items():
        assert nm not in checks, f"Name conflict for type '{nm}'"
        checks[nm] = (lambda sc: lambda x: isinstance(x,sc))(sc)
    return checks

def _build_classes(asdl_mod, ext_checks):
    SC      = _build_superclasses(asdl_mod)
    CHK     = _build_checks(SC, ext_checks)
    mod     = ModuleType(asdl_mod.name)

    def create_initfn(cname, fields):
        names   = [ f.name for f in fields ]
        checks  = [ _make_field_check(asdl_mod.name, i, f, CHK, SC)
                    for i,f in enumerate(fields) ]
        def __init__(self, *args, **kwargs):
            vals  = _bind_args(cname, names, args, kwargs)
            for chk,v in zip(checks,vals):
                chk(v)
            for nm,v in zip(names,vals):
                setattr(self,nm,v)
        __init__.__qualname__ = f"{cname}.__init__"
        return __init__

    def create_reprfn(cname, fields):
        names   = [ f.name for f in fields ]
        def __repr__(self):
            args  = ','.join([ f"{nm}={getattr(self,nm)!r}" for nm in names ])
            return f"{cname}({args})"
        return __repr__

    for nm,t in asdl_mod.types.items():
        if isinstance(t,asdl.Product):
            C           = SC[nm]
            C._fields   = [ f.name for f in t.fields ]
            C.__init__  = create_initfn(nm, t.fields)
            C.__repr__  = create_reprfn(nm, t.fields)
            setattr(mod, nm, C)
        elif isinstance(t,asdl.Sum):
            T           = SC[nm]
            for c in t.types:
                fields    = c.fields + t.attributes
                C         = type(c.name,(T,),{
                        '_fields'  : [ f.name for f in fields ],
                        '__init__' : create_initfn(c.name, fields),
                        '__repr__' : create_reprfn(c.name, fields),
                    })
                assert not hasattr(mod,c.name), (
                    f"name '{c.name}' conflict in module '{asdl_mod.name}'")
                setattr(T, c.name, C)
                setattr(mod, c.name, C)
            setattr(mod, nm, T)
        else: assert False, "unexpected kind of asdl type"

    return mod

def ADT(asdl_str, ext_checks={}):
    """ Convert an ASDL grammar into a Python module.

    The returned module holds one class for every ASDL type in the grammar,
    and one subclass for every constructor of a sum type.  Constructors
    type-check their arguments and raise `TypeError` on a mismatch.

    Parameters
    -------
    asdl_str : str
        The ASDL definition string
    ext_checks : dict of functions, optional
        Type-checking predicates for every external type the grammar names
        that is not built-in ('string', 'int', 'float', 'bool', 'object').

    Returns
    -------
    module
        The newly created module
    """
    asdl_ast        = _asdl_parse(asdl_str)
    mod             = _build_classes(asdl_ast, ext_checks)
    mod._ext_checks = ext_checks
    mod._ast        = asdl_ast
    mod._defstr     = asdl_str
    mod.__doc__     = (f"ASDL Module Generated by ADT\n\n"
                       f"Original ASDL description:\n{asdl_str}")
    return mod

# --------------------------------------------------------------------------- #
# --------------------------------------------------------------------------- #
# Memoization (hash-consing)

def _add_memoization(mod, whitelist, ext_key):
    asdl_mod  = mod._ast
    keymap    = _builtin_keymap.copy()
    keymap.update(ext_key)
    for nm in asdl_mod.types:
        keymap[nm] = id

    def field_key(f):
        K = keymap[f.type]
        if f.seq:   return lambda x: tuple( K(e) for e in x )
        elif f.opt: return lambda x: None if x is None else K(x)
        else:       return K

    def create_newfn(name, fields):
        if name not in whitelist: return
        T         = getattr(mod,name)
        names     = [ f.name for f in fields ]
        keyfns    = [ field_key(f) for f in fields ]
        T._memo_cache = WeakValueDictionary({})

        def __new__(cls, *args, **kwargs):
            vals    = _bind_args(name, names, args, kwargs)
            try:
                key   = tuple( kf(v) for kf,v in zip(keyfns,vals) )
                val   = T._memo_cache.get(key)
            except TypeError:
                # malformed arguments; let __init__ report the type error
                return object.__new__(cls)
            if val is None:
                val   = object.__new__(cls)
                T._memo_cache[key] = val
            return val
        T.__new__ = __new__

    for nm,t in asdl_mod.types.items():
        if isinstance(t,asdl.Product):
            create_newfn(nm, t.fields)
        elif isinstance(t,asdl.Sum):
            for c in t.types:
                create_newfn(c.name, c.fields + t.attributes)
        else: assert False, "unexpected kind of asdl type"

def memo(mod, whitelist, ext_key={}):
    """ Wrap ADT class constructors with memoization.

    Call right after building the module with `ADT`.  Memoized constructors
    return the identical object for identical arguments, so structural
    equality becomes `is`.

    Parameters
    -------
    mod : ADT module
    whitelist : list of strings
        Names of every constructor in `mod` that will be memoized.
    ext_key : dict of functions, optional
        Functions turning external types into hashable key-values.
    """
    _add_memoization(mod, whitelist, ext_key)
